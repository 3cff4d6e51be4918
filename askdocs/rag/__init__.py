"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document chunking with overlap
- Embedding generation
- In-memory vector storage with cosine search
- Semantic retrieval
- Context assembly and grounded answering
"""
