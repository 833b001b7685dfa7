"""
Session and profile management.

Responsibilities:
- Bootstrap the profile record for a freshly authenticated identity
- Mirror each identity's last-known profile to a local cache (never authoritative)
- Rename the profile and fan the new name out to every project snapshot
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import repository
import schemas
from context import SessionContext
from errors import ProfileCreationError, RemoteOperationError, ValidationError
from store import DocumentStore

logger = logging.getLogger(__name__)

PROFILE_CACHE_PATH = os.environ.get("PROFILE_CACHE_PATH", ".taskboard/profile.json")
PROFILE_CACHE_KEY = "current_profile"


class ProfileCache:
    """
    Local persistent storage for last-known profiles, one entry per identity.

    The file holds a single key mapping each uid to its profile snapshot, so
    one identity never reads or clears another's entry. Used only to show
    something before the authenticated session resolves. Read failures are
    treated as an empty cache.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or PROFILE_CACHE_PATH)

    def _entries(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            entries = payload.get(PROFILE_CACHE_KEY) if isinstance(payload, dict) else None
            if not isinstance(entries, dict):
                raise ValueError(f"'{PROFILE_CACHE_KEY}' is not a mapping of uid to profile")
            return entries
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable profile cache at {self.path}: {e}")
            return {}

    def get(self, uid: str) -> Optional[schemas.User]:
        snapshot = self._entries().get(uid)
        if not snapshot:
            return None
        try:
            return schemas.User.model_validate(snapshot)
        except ValueError as e:
            logger.warning(f"Ignoring invalid cached profile for {uid}: {e}")
            return None

    def set(self, uid: str, profile: Optional[schemas.User]) -> None:
        """Store the snapshot for uid, or drop its entry when profile is None."""
        entries = self._entries()
        if profile is None:
            entries.pop(uid, None)
        else:
            entries[uid] = profile.model_dump(mode="json")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps({PROFILE_CACHE_KEY: entries}), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not write profile cache at {self.path}: {e}")
            return
        logger.debug(f"Profile cache {'updated' if profile else 'cleared'} for {uid}")


def get_current_profile(cache: ProfileCache, uid: str) -> Optional[schemas.User]:
    """Cached profile of the given identity for fast bootstrap. Not the source of truth."""
    return cache.get(uid)


def default_profile_name(identity: schemas.Identity) -> str:
    return identity.display_name or identity.email.split("@")[0]


def bootstrap_profile(store: DocumentStore, identity: schemas.Identity) -> schemas.User:
    """
    Fetch the profile for an authenticated identity, creating it on first sign-in.

    Args:
        store: Document store
        identity: Externally verified identity

    Returns:
        The stored profile

    Raises:
        ProfileCreationError: If the profile could not be written or read back
    """
    logger.debug(f"Bootstrapping profile for {identity.uid}")

    profile = repository.get_user_profile(store, identity.uid)
    if profile is not None:
        return profile

    logger.info(f"No profile for {identity.email}, creating one")
    try:
        repository.create_user_profile(
            store, identity.uid, default_profile_name(identity), identity.email
        )
    except RemoteOperationError as e:
        logger.error(f"Profile creation failed for {identity.uid}: {e}")
        raise ProfileCreationError("Could not create user profile") from e

    profile = repository.get_user_profile(store, identity.uid)
    if profile is None:
        logger.error(f"Profile for {identity.uid} missing after creation")
        raise ProfileCreationError("Could not create user profile")

    logger.info(f"Profile created for {identity.email} (ID: {profile.id})")
    return profile


def on_identity_changed(
    store: DocumentStore,
    cache: ProfileCache,
    identity: Optional[schemas.Identity],
    signed_out_uid: Optional[str] = None,
) -> Optional[schemas.User]:
    """
    Consume an identity-changed notification from the auth collaborator.

    A signed-in identity bootstraps and caches its profile. None (sign-out)
    drops the cache entry of signed_out_uid and leaves every other entry alone.
    """
    if identity is None:
        if signed_out_uid:
            logger.info(f"Identity {signed_out_uid} signed out, dropping its cached profile")
            cache.set(signed_out_uid, None)
        return None

    profile = bootstrap_profile(store, identity)
    cache.set(identity.uid, profile)
    return profile


def rename_profile(
    ctx: SessionContext,
    new_name: str,
    cache: Optional[ProfileCache] = None,
) -> schemas.User:
    """
    Rename the signed-in user and propagate the name to every project snapshot.

    The user record, each matching team snapshot, and owner_name on owned
    projects are written in one batch: either every copy changes or none do.

    Raises:
        ValidationError: If the name is empty or unchanged
    """
    try:
        new_name = schemas.normalize_display_name(new_name)
    except ValueError as e:
        raise ValidationError(str(e)) from None
    if new_name == ctx.profile.name:
        raise ValidationError("Name is unchanged")

    uid = ctx.user_id
    logger.debug(f"Renaming profile {uid} to {new_name!r}")

    projects = {p.id: p for p in repository.projects_owned_by(ctx.store, uid)}
    for project in repository.projects_with_member(ctx.store, uid):
        projects.setdefault(project.id, project)

    batch = ctx.store.batch()
    batch.update(repository.USERS, uid, {"name": new_name})
    for project in projects.values():
        members = [
            member.model_copy(update={"name": new_name}) if member.id == uid else member
            for member in project.team_members
        ]
        fields = {"team_members": repository.dump_members(members)}
        if project.owner_id == uid:
            fields["owner_name"] = new_name
        batch.update(repository.PROJECTS, project.id, fields)
    batch.commit()

    ctx.profile = ctx.profile.model_copy(update={"name": new_name})
    if cache is not None:
        cache.set(uid, ctx.profile)

    logger.info(f"Profile {uid} renamed; {len(projects)} project snapshots updated")
    return ctx.profile
