"""Adapters layer - Concrete implementations of ports.

This module contains implementations of the port interfaces,
connecting the resolver to its collaborators:
- Caching (in-memory, null)
- Text completion (HTTP chat-completions, null)
- Destination similarity (rapidfuzz, transformers embeddings)
- Conversation context (keyword sequence model)
- Pattern learning storage (in-memory, JSON file)
"""
