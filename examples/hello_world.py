"""
policy_pipeline — Hello World

Policies bind to lifecycle stages.  A route lists the policies it needs;
at each stage they run in declared order and the first denial stops the
request.
"""

import asyncio

from policy_pipeline import ApplyPoint, PolicyResult, apply_at, callback_policy, register
from policy_pipeline.host import LifecycleHost

# ─── Your policies (plain functions, sync or async) ───


@apply_at(ApplyPoint.ON_POST_AUTH)
def authenticated(request):
    """Rejects anonymous callers."""
    if not request.user_id:
        return PolicyResult.deny("login required")
    return True


def engineers_only(request):
    """Only engineers may search."""
    if not request.user_id.endswith("@eng.acme.com"):
        return PolicyResult.deny("engineering staff only")
    request.metadata["team"] = "eng"
    return True


@callback_policy
def quota(request, done):
    """Callback-style policy: pretend to ask a remote quota service."""
    loop = asyncio.get_running_loop()
    loop.call_later(0.01, lambda: done(can_continue=True))


def search(request):
    return {"results": f"found things for {request.input.get('query', '')!r}"}


async def main():
    # ──────────────────────────────────────
    #  1. Wire the pipeline into the host
    # ──────────────────────────────────────
    host = LifecycleHost()
    pipeline = register(host, default_apply_point=ApplyPoint.ON_PRE_HANDLER)

    # ──────────────────────────────────────
    #  2. Register policies (load phase)
    # ──────────────────────────────────────
    pipeline.load_policies(
        [
            ("authenticated", authenticated),
            ("engineers_only", engineers_only),
            ("quota", quota),
        ]
    )

    # ──────────────────────────────────────
    #  3. Declare routes
    # ──────────────────────────────────────
    host.route(
        "/search",
        policies=["authenticated", "engineers_only", "quota"],
        handler=search,
    )

    # ──────────────────────────────────────
    #  4. Serve requests
    # ──────────────────────────────────────
    for user in ["alice@eng.acme.com", "bob@sales.acme.com", ""]:
        response = await host.inject("/search", user_id=user, input={"query": "architecture"})
        if response.ok:
            print(f"  [ALLOWED] user={user!r}  payload={response.payload}")
        else:
            print(f"  [DENIED]  user={user!r}  status={response.status_code}  error={response.error}")

    print()
    print(pipeline.export().model_dump_json(indent=2))


if __name__ == "__main__":
    asyncio.run(main())
