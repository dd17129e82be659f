"""
Ingestion: document loading, chunking, embedding and indexing.

This module is responsible for the asynchronous pipeline that converts
uploaded documents (PDF, text, Markdown) into embedded chunks stored in
the vector index, scoped to the conversation they were uploaded to.
"""
