import pytest

from anim_timing import ActionRegistry, InvalidArgumentError, InvalidStateError


def f(entry):
    pass


def g(entry):
    pass


def test_first_registration_wins():
    registry = ActionRegistry()
    registry.register({"A": f})
    registry.register({"A": g})
    assert registry.get("A") is f


def test_overwrite_rebinds():
    registry = ActionRegistry()
    registry.register({"A": f})
    registry.register({"A": g}, overwrite=True)
    assert registry.get("A") is g


def test_register_leaves_other_labels_alone():
    registry = ActionRegistry()
    registry.register({"A": f})
    registry.register({"A": g, "B": g})
    assert registry.get("A") is f
    assert registry.get("B") is g
    assert sorted(registry.labels()) == ["A", "B"]
    assert len(registry) == 2


def test_label_bound_to_none_counts_as_unbound():
    registry = ActionRegistry()
    registry.register({"A": None})
    assert "A" not in registry
    registry.register({"A": f})
    assert registry.get("A") is f


def test_unknown_label():
    registry = ActionRegistry()
    assert registry.get("missing") is None
    assert "missing" not in registry


def test_ensure_non_empty():
    registry = ActionRegistry()
    with pytest.raises(InvalidStateError, match="No actions assigned to animations"):
        registry.ensure_non_empty()
    registry.register({"A": None})
    with pytest.raises(InvalidStateError):
        registry.ensure_non_empty()
    registry.register({"A": f})
    registry.ensure_non_empty()


def test_non_callable_action_is_rejected_without_partial_registration():
    registry = ActionRegistry()
    with pytest.raises(InvalidArgumentError):
        registry.register({"A": f, "B": 42})
    assert len(registry) == 0


def test_register_requires_mapping():
    registry = ActionRegistry()
    with pytest.raises(InvalidArgumentError):
        registry.register([("A", f)])
