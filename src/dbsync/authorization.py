"""
Per-user authorization of docids.

The host supplies the authorization query as a callable taking a username
and the comma-joined key values of the candidate documents, and returning
the values the user may see. Docids in either the legacy or the current
format are accepted.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from opentelemetry import trace
from prometheus_client import Counter

from dbsync.identity.legacy import legacy_adapt, resolve_matches
from dbsync.utils.metrics import get_or_create_metric
from dbsync.utils.tracing import add_span_attributes, trace_operation

logger = logging.getLogger(__name__)

AuthorizationLookup = Callable[[str, list[str]], Iterable[str]]


# Metrics
AUTHORIZATION_DECISIONS = get_or_create_metric(
    lambda: Counter(
        "dbsync_authorization_decisions_total",
        "Authorization answers",
        ["status"],
    ),
    "dbsync_authorization_decisions_total",
)


class AuthorizationStatus(str, Enum):
    PERMIT = "permit"
    DENY = "deny"


@dataclass(frozen=True)
class AuthorizationResponse:
    docid: str
    status: AuthorizationStatus

    @property
    def permitted(self) -> bool:
        return self.status == AuthorizationStatus.PERMIT


def authorize_docids(
    docids: Iterable[str],
    username: str,
    lookup: AuthorizationLookup,
) -> list[AuthorizationResponse]:
    """
    Answer PERMIT or DENY for each docid.

    Args:
        docids: Docids in legacy or current format
        username: User to authorize
        lookup: Authorization query returning permitted key values

    Returns:
        One response per distinct docid, in input order. Docids that cannot
        be decoded are denied.
    """
    docids = list(dict.fromkeys(docids))

    with trace_operation(
        "authorize_docids",
        kind=trace.SpanKind.CLIENT,
        username=username,
        docid_count=len(docids),
    ):
        docid_map = legacy_adapt(docids)
        if docid_map:
            matched = lookup(username, list(docid_map))
            permitted = set(resolve_matches(docid_map, matched))
        else:
            permitted = set()

        responses = []
        for docid in docids:
            status = (
                AuthorizationStatus.PERMIT if docid in permitted else AuthorizationStatus.DENY
            )
            AUTHORIZATION_DECISIONS.labels(status=status.value).inc()
            responses.append(AuthorizationResponse(docid, status))

        add_span_attributes(permitted=len(permitted))
        logger.info(
            f"Authorized {len(permitted)} of {len(docids)} documents for user {username}"
        )
        return responses
