"""
Core orchestration logic.

Credit ledger, job tracker, session manager, post-processing, naming,
bundling and the expiration sweep.
"""
