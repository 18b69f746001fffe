"""Shared test fixtures."""

import pytest

from policy_pipeline import PolicyPipeline, PolicyResult, RequestContext, Route
from policy_pipeline.host import LifecycleHost


@pytest.fixture
def host():
    return LifecycleHost()


@pytest.fixture
def pipeline(host):
    return PolicyPipeline(host)


@pytest.fixture
def calls():
    """Names of the policies invoked during a test, in invocation order."""
    return []


@pytest.fixture
def make_policy(calls):
    """Build a policy that records its invocation and returns a fixed verdict."""

    def factory(label, verdict=True, apply_point=None):
        def policy(request):
            calls.append(label)
            return verdict

        policy.__name__ = label
        if apply_point is not None:
            policy.apply_point = apply_point
        return policy

    return factory


@pytest.fixture
def deny_with():
    def factory(reason):
        def policy(request):
            return PolicyResult.deny(reason)

        return policy

    return factory


@pytest.fixture
def make_request():
    def factory(policies=None, **settings):
        return RequestContext(route=Route(path="/test", policies=policies, settings=settings))

    return factory
