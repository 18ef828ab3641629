"""Three-phase publish protocol: stage, transfer, publish.

A release moves ``built -> staged -> transferred -> published``. A stage
conflict ends the run early: as ``published`` with ``already_published`` set
when conflicts are tolerated, or as ``conflicted`` with a
:class:`~flakehub_push.errors.ConflictError` in strict mode. Any other
failure leaves the publisher in ``failed`` and propagates.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

from flakehub_push.errors import ConflictError
from flakehub_push.logging import get_logger, log_debug, log_info

if typ.TYPE_CHECKING:
    from flakehub_push.release.models import ReleaseMetadata, Tarball

    from .client import FlakeHubClient

logger = get_logger(__name__)


class PublishState(enum.StrEnum):
    """Lifecycle states of a release upload."""

    BUILT = "built"
    STAGED = "staged"
    TRANSFERRED = "transferred"
    PUBLISHED = "published"
    CONFLICTED = "conflicted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True when no further transition is possible."""
        return self in {
            PublishState.PUBLISHED,
            PublishState.CONFLICTED,
            PublishState.FAILED,
        }


@dataclasses.dataclass(frozen=True, slots=True)
class PublishOutcome:
    """Result of a completed publish run.

    Attributes
    ----------
    state
        Final state; always ``published`` for a returned outcome.
    upload_name
        ``owner/name`` the release was uploaded under.
    version
        Release version string.
    release_id
        Registry id of the staged release; ``None`` when it already existed.
    already_published
        True when the registry reported the release as existing.

    """

    state: PublishState
    upload_name: str
    version: str
    release_id: str | None = None
    already_published: bool = False


class ReleasePublisher:
    """Drive one release through the publish protocol."""

    def __init__(self, client: FlakeHubClient, *, error_on_conflict: bool = False) -> None:
        """Initialise with the registry client and the conflict policy."""
        self._client = client
        self._error_on_conflict = error_on_conflict
        self._state = PublishState.BUILT

    @property
    def state(self) -> PublishState:
        """Return the current protocol state."""
        return self._state

    def _advance(self, state: PublishState) -> None:
        if self._state.is_terminal:
            msg = f"release already finished in state {self._state}"
            raise RuntimeError(msg)
        log_debug(logger, "Release %s -> %s", self._state, state)
        self._state = state

    async def publish(
        self,
        upload_name: str,
        version: str,
        metadata: ReleaseMetadata,
        tarball: Tarball,
    ) -> PublishOutcome:
        """Stage, transfer and publish a release.

        Parameters
        ----------
        upload_name
            ``owner/name`` the release is uploaded under.
        version
            Release version string.
        metadata
            Release metadata for the stage request.
        tarball
            Flake source archive.

        Returns
        -------
        PublishOutcome
            The published release, or an ``already_published`` outcome when
            a conflict is tolerated.

        Raises
        ------
        ConflictError
            If the release exists and conflicts are fatal.
        PushError
            If any phase fails.

        """
        if self._state is not PublishState.BUILT:
            msg = f"release publisher already used (state {self._state})"
            raise RuntimeError(msg)

        log_info(logger, "Preparing release of %s/%s", upload_name, version)
        try:
            staged = await self._client.stage_release(
                upload_name, version, metadata, tarball
            )
        except ConflictError:
            log_info(
                logger,
                "Release for revision `%s` of %s/%s already exists; flakehub-push "
                "will not upload it again",
                metadata.revision,
                upload_name,
                version,
            )
            if self._error_on_conflict:
                self._advance(PublishState.CONFLICTED)
                raise
            self._advance(PublishState.PUBLISHED)
            return PublishOutcome(
                state=self._state,
                upload_name=upload_name,
                version=version,
                already_published=True,
            )
        except Exception:
            self._advance(PublishState.FAILED)
            raise
        self._advance(PublishState.STAGED)

        try:
            await self._client.upload_tarball(staged.upload_url, tarball)
            self._advance(PublishState.TRANSFERRED)
            await self._client.publish_release(staged.release_id)
        except Exception:
            self._advance(PublishState.FAILED)
            raise
        self._advance(PublishState.PUBLISHED)

        log_info(
            logger,
            "Successfully released new version of %s/%s",
            upload_name,
            version,
        )
        return PublishOutcome(
            state=self._state,
            upload_name=upload_name,
            version=version,
            release_id=staged.release_id,
        )


__all__ = ["PublishOutcome", "PublishState", "ReleasePublisher"]
