"""Service handles for StayIN: identity provider, stores, assets, notices."""

from stayin.services.assets import AssetPreloader
from stayin.services.credentials import CredentialService, SupabaseCredentialService
from stayin.services.local_store import LocalStore
from stayin.services.notices import NoticeBoard
from stayin.services.profile_store import ProfileStore, SupabaseProfileStore

__all__ = [
    "AssetPreloader",
    "CredentialService",
    "LocalStore",
    "NoticeBoard",
    "ProfileStore",
    "SupabaseCredentialService",
    "SupabaseProfileStore",
]
