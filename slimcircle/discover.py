"""
Read-only discover content: articles and categories.
"""

from __future__ import annotations

from typing import Optional

from slimcircle.db import DocumentStore
from shared.firebase_constants import ARTICLES_COLLECTION, CATEGORIES_COLLECTION
from shared.json_utils import normalize_timestamps


def _to_item(doc_id: str, data: dict) -> dict:
    return {"id": doc_id, **normalize_timestamps(data)}


def list_articles(store: DocumentStore) -> list[dict]:
    """All articles, newest first."""
    docs = store.list(ARTICLES_COLLECTION, order_by="publishedAt", descending=True)
    return [_to_item(doc_id, data) for doc_id, data in docs]


def get_article(store: DocumentStore, article_id: str) -> Optional[dict]:
    data = store.get(ARTICLES_COLLECTION, article_id)
    return _to_item(article_id, data) if data is not None else None


def list_categories(store: DocumentStore) -> list[dict]:
    return [_to_item(doc_id, data) for doc_id, data in store.list(CATEGORIES_COLLECTION)]
