"""Tests for directive parsing and per-stage policy resolution."""

import pytest

from policy_pipeline import (
    DISABLED,
    ApplyPoint,
    InvalidApplyPointError,
    MalformedDirectiveError,
    MissingPolicyError,
    PolicyRegistry,
    apply_at,
)
from policy_pipeline.directives import ByName, Inline, parse_directive, parse_directives
from policy_pipeline.resolver import inline_apply_point, resolve


def allow(request):
    return True


@pytest.fixture
def registry():
    registry = PolicyRegistry(ApplyPoint.ON_PRE_HANDLER)
    registry.register("A", lambda request: True)
    registry.register("B", lambda request: False)
    registry.register("auth", lambda request: True, apply_point="onPostAuth")
    registry.register("off", apply_at(DISABLED)(lambda request: True))
    return registry


# ── directives ───────────────────────────────────────────────


def test_parse_name():
    assert parse_directive("A") == ByName("A")


def test_parse_inline():
    directive = parse_directive(allow)
    assert directive == Inline(allow)
    assert directive.name == "allow"


def test_parse_passes_through_parsed_directives():
    directive = ByName("A")
    assert parse_directive(directive) is directive


@pytest.mark.parametrize("value", [42, None, {"name": "A"}, ["A"]])
def test_parse_rejects_other_shapes(value):
    with pytest.raises(MalformedDirectiveError) as exc_info:
        parse_directive(value)
    assert exc_info.value.directive == value


def test_parse_directives_keeps_order():
    assert parse_directives(["B", allow, "A"]) == [ByName("B"), Inline(allow), ByName("A")]


# ── named policies ───────────────────────────────────────────


def test_no_directives_resolves_to_nothing(registry):
    assert resolve("onPreHandler", registry, None) == []
    assert resolve("onPreHandler", registry, []) == []


def test_named_policies_keep_declared_order(registry):
    resolved = resolve("onPreHandler", registry, ["B", "A"])
    assert [p.name for p in resolved] == ["B", "A"]
    assert not any(p.inline for p in resolved)


def test_named_policy_at_other_stage_is_skipped(registry):
    assert [p.name for p in resolve("onPreHandler", registry, ["auth", "A"])] == ["A"]
    assert [p.name for p in resolve("onPostAuth", registry, ["auth", "A"])] == ["auth"]


def test_reserved_name_resolves_but_never_runs(registry):
    for point in ApplyPoint:
        assert resolve(point, registry, ["off"]) == []


def test_missing_name_fails(registry):
    with pytest.raises(MissingPolicyError) as exc_info:
        resolve("onPreHandler", registry, ["A", "B", "C"])

    assert exc_info.value.name == "C"
    assert str(exc_info.value) == "Missing policy: C"
    assert exc_info.value.status_code == 501


def test_missing_name_fails_even_at_unrelated_stage(registry):
    with pytest.raises(MissingPolicyError):
        resolve("onRequest", registry, ["C"])


# ── inline policies ──────────────────────────────────────────


def test_inline_without_attribute_uses_default(registry):
    def inline(request):
        return True

    assert [p.fn for p in resolve("onPreHandler", registry, [inline])] == [inline]
    assert resolve("onPostAuth", registry, [inline]) == []


def test_inline_default_can_be_overridden(registry):
    def inline(request):
        return True

    resolved = resolve("onPostAuth", registry, [inline], default_apply_point="onPostAuth")
    assert [p.fn for p in resolved] == [inline]
    assert resolved[0].inline


def test_inline_with_explicit_stage(registry):
    inline = apply_at("onRequest")(lambda request: True)

    assert len(resolve("onRequest", registry, [inline])) == 1
    assert resolve("onPreHandler", registry, [inline]) == []


def test_inline_disabled_marker_falls_back_to_default(registry):
    inline = apply_at(DISABLED)(lambda request: True)
    assert inline_apply_point(inline, ApplyPoint.ON_PRE_AUTH) is ApplyPoint.ON_PRE_AUTH


def test_inline_invalid_stage_fails(registry):
    inline = apply_at("onLunch")(lambda request: True)

    with pytest.raises(InvalidApplyPointError) as exc_info:
        resolve("onPreHandler", registry, ["A", inline])

    assert exc_info.value.value == "onLunch"


def test_mixed_names_and_inline_keep_order(registry):
    def inline(request):
        return True

    resolved = resolve("onPreHandler", registry, ["A", inline, "auth", "B"])
    assert [p.name for p in resolved] == ["A", "inline", "B"]


# ── first error wins ─────────────────────────────────────────


def test_malformed_directive_fails(registry):
    with pytest.raises(MalformedDirectiveError):
        resolve("onPreHandler", registry, ["A", 7])


def test_first_error_wins(registry):
    with pytest.raises(MissingPolicyError):
        resolve("onPreHandler", registry, ["nope", 7, apply_at("bad")(lambda r: True)])

    with pytest.raises(MalformedDirectiveError):
        resolve("onPreHandler", registry, [7, "nope"])
