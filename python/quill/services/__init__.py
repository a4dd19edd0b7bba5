"""Business logic services.

This module contains service-layer functions that implement the account
lifecycle. Callers (HTTP handlers, admin tasks) go through AccountLifecycle;
the store functions underneath expect an open TransactionContext.
"""

from quill.services.backup import BackupGateway, JsonExportBackup, backup_locator
from quill.services.passwords import (
    JwtResetTokenGenerator,
    ResetNotifier,
    ResetTokenGenerator,
    reset_all_passwords,
)
from quill.services.revisions import PostRevisions, RevisionConfig, RevisionScrubber
from quill.services.tags import assign_marker_tag, marker_tag_slug
from quill.services.users import AccountLifecycle, owner_fallback_author

__all__ = [
    "AccountLifecycle",
    "owner_fallback_author",
    "BackupGateway",
    "JsonExportBackup",
    "backup_locator",
    "JwtResetTokenGenerator",
    "ResetNotifier",
    "ResetTokenGenerator",
    "reset_all_passwords",
    "PostRevisions",
    "RevisionConfig",
    "RevisionScrubber",
    "assign_marker_tag",
    "marker_tag_slug",
]
