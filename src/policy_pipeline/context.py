"""Route and RequestContext — the data a stage dispatcher sees for one request."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class Route:
    """A route declaration as the host knows it.

    Attributes:
        path:     Route identifier (path, operation name, ...).
        policies: Ordered policy directives.  Each is a registered policy
                  name or an inline policy callable.  ``None`` means no
                  policies are declared.
        settings: Free-form route configuration.  When ``policies`` is unset
                  the pipeline falls back to ``settings[<route_key>]``.
        handler:  Optional callable producing the route's response payload.
    """

    path: str
    policies: list[Any] | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    handler: Any = None

    def directives(self, route_key: str = "policies") -> list[Any] | None:
        if self.policies is not None:
            return self.policies
        return self.settings.get(route_key)


@dataclass
class RequestContext:
    """Per-request object handed to every policy.

    Attributes:
        route:    The route this request matched.
        user_id:  Identifier for whoever is making the request.
        input:    Arbitrary input payload.  Policies read from here.
        metadata: Shared scratchpad; upstream policies may write values for
                  downstream ones.
        timestamp: When the request was created.  Auto-set to *now* (UTC).
    """

    route: Route
    user_id: str = ""
    input: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
