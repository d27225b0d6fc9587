"""Retrieval and RAG context assembly over the embedding index."""
