"""
Task subsystem.

Components:
- task_repo.py: CRUD over the tasks slice of the document
"""
