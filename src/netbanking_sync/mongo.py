from __future__ import annotations

from typing import Any

from bson import ObjectId
from pymongo import AsyncMongoClient

from .config import OtpStoreConfig
from .otp.retriever import OtpRetriever
from .otp.store import MongoOtpStore


def open_client(uri: str) -> AsyncMongoClient:
    """One long-lived client per process; callers own `await client.close()`."""
    return AsyncMongoClient(
        uri,
        tz_aware=True,
        serverSelectionTimeoutMS=10_000,
        connectTimeoutMS=10_000,
        socketTimeoutMS=10_000,
    )


def otp_collection(client: AsyncMongoClient, cfg: OtpStoreConfig) -> Any:
    db = client[cfg.database] if cfg.database else client.get_default_database(default="test")
    return db[cfg.collection]


def build_retriever(client: AsyncMongoClient, cfg: OtpStoreConfig) -> OtpRetriever:
    store = MongoOtpStore(
        otp_collection(client, cfg),
        code_field=cfg.code_field,
        created_at_field=cfg.created_at_field,
    )
    return OtpRetriever(store, timeout=cfg.timeout_seconds, poll_interval=cfg.poll_interval_seconds)


def restore_object_ids(values: list[str]) -> list[Any]:
    return [ObjectId(v) if ObjectId.is_valid(v) else v for v in values]
