"""Tests for StageDispatcher — outcome mapping and the already-finalized guard."""

import pytest

from policy_pipeline import AccessDeniedError, ApplyPoint, PolicyResult
from policy_pipeline.dispatcher import StageDispatcher


class RecordingToolkit:
    def __init__(self, finalized=False):
        self._finalized = finalized
        self.events = []

    @property
    def finalized(self):
        return self._finalized

    def proceed(self):
        self.events.append(("proceed", None))

    def finalize(self, outcome):
        self._finalized = True
        self.events.append(("finalize", outcome))


@pytest.fixture
def dispatcher(pipeline):
    return StageDispatcher(ApplyPoint.ON_PRE_HANDLER, pipeline)


async def test_completed_proceeds(pipeline, dispatcher, make_policy, make_request):
    pipeline.register_policy("a", make_policy("a"))
    toolkit = RecordingToolkit()

    await dispatcher(make_request(["a"]), toolkit)

    assert toolkit.events == [("proceed", None)]


async def test_no_directives_proceeds(dispatcher, make_request):
    toolkit = RecordingToolkit()
    await dispatcher(make_request(None), toolkit)
    assert toolkit.events == [("proceed", None)]


async def test_denied_finalizes_with_forbidden(pipeline, dispatcher, make_request):
    pipeline.register_policy("no", lambda request: PolicyResult.deny("nope"))
    toolkit = RecordingToolkit()

    await dispatcher(make_request(["no"]), toolkit)

    [(event, error)] = toolkit.events
    assert event == "finalize"
    assert isinstance(error, AccessDeniedError)
    assert error.status_code == 403
    assert error.reason == "nope"
    assert error.result.policy_name == "no"


async def test_errored_finalizes_with_raised_error(pipeline, dispatcher, make_request):
    err = LookupError("gone")

    def failing(request):
        raise err

    pipeline.register_policy("failing", failing)
    toolkit = RecordingToolkit()

    await dispatcher(make_request(["failing"]), toolkit)

    assert toolkit.events == [("finalize", err)]


async def test_already_finalized_emits_nothing(pipeline, dispatcher, make_policy, make_request, calls):
    pipeline.register_policy("a", make_policy("a"))
    toolkit = RecordingToolkit(finalized=True)

    await dispatcher(make_request(["a"]), toolkit)

    assert calls == ["a"]
    assert toolkit.events == []


async def test_policy_finalizing_through_another_path(pipeline, dispatcher, make_request):
    toolkit = RecordingToolkit()

    def short_circuit(request):
        toolkit.finalize("served from cache")
        return PolicyResult.deny("ignored")

    pipeline.register_policy("cache", short_circuit)

    await dispatcher(make_request(["cache"]), toolkit)

    assert toolkit.events == [("finalize", "served from cache")]


def test_repr(dispatcher):
    assert repr(dispatcher) == "StageDispatcher('onPreHandler')"
