"""
API Routes

This package contains Flask blueprints for:
- auth: Authentication and user management
- documents: Knowledge-base uploads and retrieval
- chat: RAG chatbot and conversations
- reports: Incident and maintenance reports
"""
