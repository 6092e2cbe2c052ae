"""
Database Models

This package contains MongoDB model classes for:
- User: Authentication, roles and profile management
- Document / DocumentChunk: Knowledge-base documents and their embedded chunks
- Conversation / ChatMessage: Chatbot sessions and message history
- Report: Security incidents and maintenance requests
"""
