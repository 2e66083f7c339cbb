"""
Study-time subsystem.

Components:
- session_repo.py: completed sessions + the unfinished-session slot
- aggregator.py: daily/monthly totals and averages over recorded sessions
"""
