from .retriever import OtpRetriever, utc_now
from .store import InMemoryOtpStore, MongoOtpStore, OtpStore

__all__ = ["InMemoryOtpStore", "MongoOtpStore", "OtpRetriever", "OtpStore", "utc_now"]
