"""
Persistence subsystem.

Components:
- models.py: document data structures (Document, Task, Session, UnfinishedSession)
- coercion.py: schema-tolerant loader turning raw JSON into a Document + report
- document_store.py: SQLite key-value store holding the single document
"""
