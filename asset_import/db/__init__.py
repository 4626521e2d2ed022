from .store import DocumentStore, StoreError, StoreLimitError, VocabularyStore

__all__ = ["DocumentStore", "StoreError", "StoreLimitError", "VocabularyStore"]
