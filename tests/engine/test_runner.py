"""Tests for the plan/apply engine."""

import threading
import pytest
from converge.contracts.run_report import ErrorKind, ReportAction, RunMode
from converge.descriptors.models import ResourceDescriptor, ResourceKind, Scope
from converge.engine.runner import RunOptions, apply, destroy, plan, run
from converge.providers.memory import InMemoryProvider
from converge.utils.errors import CycleDetectedError, PermissionDeniedError, UnknownDependencyError

CREATE = ReportAction.CREATE
DELETE = ReportAction.DELETE
NO_OP = ReportAction.NO_OP


@pytest.fixture
def https_chain():
    """Static IP, managed certificate, HTTPS proxy and forwarding rule."""
    return [
        ResourceDescriptor(id="ip", kind=ResourceKind.STATIC_IP),
        ResourceDescriptor(
            id="cert", kind=ResourceKind.SSL_CERTIFICATE, depends_on=["ip"],
            spec={"domains": ["code.example.com"]},
        ),
        ResourceDescriptor(
            id="proxy", kind=ResourceKind.HTTPS_PROXY, depends_on=["cert"],
            spec={"ssl-certificates": "cert"},
        ),
        ResourceDescriptor(
            id="rule", kind=ResourceKind.FORWARDING_RULE, depends_on=["proxy"],
            spec={"target-https-proxy": "proxy", "ports": "443"},
        ),
    ]


@pytest.fixture
def provider():
    return InMemoryProvider()


class TestPlan:
    """Test plan runs."""

    def test_plan_on_empty_provider(self, https_chain, provider):
        """Every node is created, dependencies first."""
        report = plan(https_chain, provider)

        assert report.mode == RunMode.PLAN
        assert report.actions() == [(CREATE, "ip"), (CREATE, "cert"), (CREATE, "proxy"), (CREATE, "rule")]

    def test_plan_issues_describe_calls_only(self, https_chain, provider):
        plan(https_chain, provider)

        assert provider.mutating_calls() == []
        assert [op for op, _ in provider.calls] == ["describe"] * 4
        assert provider.resources == {}

    def test_plan_after_apply_is_all_noop(self, https_chain, provider):
        apply(https_chain, provider)
        report = plan(https_chain, provider)

        assert report.is_noop()
        assert len(report.entries) == 4

    def test_removed_rule_is_only_change(self, https_chain, provider):
        """Dropping the rule from the desired set deletes just the rule."""
        apply(https_chain, provider)
        desired = [d for d in https_chain if d.id != "rule"]

        report = plan(desired, provider, managed=https_chain)

        assert report.changes() == [(DELETE, "rule")]
        assert report.actions()[0] == (DELETE, "rule")

    def test_empty_desired_set(self, provider):
        report = plan([], provider)

        assert report.entries == []
        assert report.succeeded
        assert provider.calls == []

    def test_changed_spec_plans_recreate(self, https_chain, provider):
        apply(https_chain, provider)
        changed = [
            d.model_copy(update={"spec": {"domains": ["new.example.com"]}}) if d.id == "cert" else d
            for d in https_chain
        ]

        report = plan(changed, provider)

        assert report.changes() == [(DELETE, "cert"), (CREATE, "cert")]


class TestApply:
    """Test apply runs."""

    def test_apply_creates_in_dependency_order(self, https_chain, provider):
        report = apply(https_chain, provider)

        assert report.mode == RunMode.APPLY
        assert provider.mutating_calls() == [
            ("create", "ip"), ("create", "cert"), ("create", "proxy"), ("create", "rule"),
        ]
        assert report.succeeded
        assert all(provider.exists(d) for d in https_chain)

    def test_apply_is_idempotent(self, https_chain, provider):
        """A second apply with no outside changes does nothing."""
        apply(https_chain, provider)
        calls_before = len(provider.mutating_calls())

        second = apply(https_chain, provider)

        assert second.is_noop()
        assert len(provider.mutating_calls()) == calls_before

    def test_plan_predicts_apply(self, https_chain, provider):
        """Plan actions equal the actions a following apply executes."""
        provider.put(https_chain[0])
        provider.put(https_chain[1], {"domains": ["old.example.com"]})
        managed = https_chain + [ResourceDescriptor(id="old-rule", kind=ResourceKind.FORWARDING_RULE)]
        provider.put(managed[-1])

        planned = plan(https_chain, provider, managed=managed)
        applied = apply(https_chain, provider, managed=managed)

        assert planned.actions() == applied.actions()
        assert planned.actions() == [
            (DELETE, "old-rule"),
            (NO_OP, "ip"),
            (DELETE, "cert"), (CREATE, "cert"),
            (CREATE, "proxy"),
            (CREATE, "rule"),
        ]

    def test_unmanaged_extra_resources_are_left_alone(self, https_chain, provider):
        stray = ResourceDescriptor(id="stray", kind=ResourceKind.VM, scope=Scope.ZONAL)
        provider.put(stray)

        apply(https_chain, provider)

        assert provider.exists(stray)

    def test_failure_blocks_dependents_only(self, provider):
        """A failed node skips its dependents but not independent nodes."""
        descriptors = [
            ResourceDescriptor(id="a", kind=ResourceKind.STATIC_IP),
            ResourceDescriptor(id="b", kind=ResourceKind.SSL_CERTIFICATE, depends_on=["a"]),
            ResourceDescriptor(id="c", kind=ResourceKind.HTTPS_PROXY, depends_on=["b"]),
            ResourceDescriptor(id="z", kind=ResourceKind.HEALTH_CHECK),
        ]
        provider.failures[("create", "b")] = PermissionDeniedError

        report = apply(descriptors, provider)

        assert report.entries_for("a")[0].action == CREATE
        failed = report.entries_for("b")[0]
        assert failed.action == ReportAction.FAIL
        assert failed.error == ErrorKind.PERMISSION_DENIED
        assert failed.intended == CREATE
        skipped = report.entries_for("c")[0]
        assert skipped.action == ReportAction.SKIP
        assert skipped.error == ErrorKind.DEPENDENCY_FAILED
        assert report.entries_for("z")[0].action == CREATE
        assert ("describe", "c") not in provider.calls
        assert not report.succeeded

    def test_describe_failure_is_recorded(self, https_chain, provider):
        provider.failures[("describe", "cert")] = PermissionDeniedError

        report = apply(https_chain, provider)

        assert report.entries_for("cert")[0].action == ReportAction.FAIL
        assert report.entries_for("proxy")[0].error == ErrorKind.DEPENDENCY_FAILED
        assert report.entries_for("rule")[0].error == ErrorKind.DEPENDENCY_FAILED

    def test_teardown_runs_before_creation(self, provider):
        old = ResourceDescriptor(id="zz-old", kind=ResourceKind.STATIC_IP)
        provider.put(old)
        desired = [ResourceDescriptor(id="aa-new", kind=ResourceKind.STATIC_IP)]

        report = apply(desired, provider, managed=[old])

        assert report.actions() == [(DELETE, "zz-old"), (CREATE, "aa-new")]

    def test_failed_teardown_keeps_dependencies(self, provider, https_chain):
        """A dependent that cannot be deleted protects what it references."""
        for descriptor in https_chain:
            provider.put(descriptor)
        provider.failures[("delete", "rule")] = PermissionDeniedError

        report = apply([], provider, managed=https_chain)

        assert report.entries_for("rule")[0].action == ReportAction.FAIL
        for resource_id in ("proxy", "cert", "ip"):
            entry = report.entries_for(resource_id)[0]
            assert entry.action == ReportAction.SKIP
            assert entry.error == ErrorKind.DEPENDENCY_FAILED
        assert provider.exists(https_chain[0])

    def test_failed_teardown_protects_desired_dependency(self, provider):
        """A desired resource still referenced by an undeletable one is not recreated."""
        old = ResourceDescriptor(id="d", kind=ResourceKind.HEALTH_CHECK, spec={"port": 1})
        stale = ResourceDescriptor(id="r", kind=ResourceKind.BACKEND_SERVICE, depends_on=["d"])
        provider.put(old)
        provider.put(stale)
        provider.failures[("delete", "r")] = PermissionDeniedError
        changed = old.model_copy(update={"spec": {"port": 2}})

        report = apply([changed], provider, managed=[old, stale])

        assert report.entries_for("r")[0].action == ReportAction.FAIL
        entry = report.entries_for("d")[0]
        assert entry.action == ReportAction.SKIP
        assert entry.error == ErrorKind.DEPENDENCY_FAILED
        assert entry.intended == DELETE
        assert provider.mutating_calls() == [("delete", "r")]
        assert provider.describe(old.kind, "d", old.scope).spec == {"port": 1}

    def test_skipped_teardown_protects_desired_dependency(self, provider):
        """Removal candidates skipped behind a failure protect their desired dependencies too."""
        base = ResourceDescriptor(id="a-base", kind=ResourceKind.STATIC_IP, spec={"v": 1})
        middle = ResourceDescriptor(id="m", kind=ResourceKind.HTTPS_PROXY, depends_on=["a-base"])
        top = ResourceDescriptor(id="t", kind=ResourceKind.FORWARDING_RULE, depends_on=["m"])
        for descriptor in (base, middle, top):
            provider.put(descriptor)
        provider.failures[("delete", "t")] = PermissionDeniedError

        report = apply([base.model_copy(update={"spec": {"v": 2}})], provider, managed=[base, middle, top])

        assert report.entries_for("m")[0].error == ErrorKind.DEPENDENCY_FAILED
        assert report.entries_for("a-base")[0].action == ReportAction.SKIP
        assert provider.mutating_calls() == [("delete", "t")]

    def test_changed_dependency_recreated_after_successful_teardown(self, provider):
        old = ResourceDescriptor(id="d", kind=ResourceKind.HEALTH_CHECK, spec={"port": 1})
        stale = ResourceDescriptor(id="r", kind=ResourceKind.BACKEND_SERVICE, depends_on=["d"])
        provider.put(old)
        provider.put(stale)

        report = apply([old.model_copy(update={"spec": {"port": 2}})], provider, managed=[old, stale])

        assert report.actions() == [(DELETE, "r"), (DELETE, "d"), (CREATE, "d")]

    def test_call_timeout_reported(self, https_chain):
        import time

        class SlowProvider(InMemoryProvider):
            def create(self, descriptor):
                if descriptor.id == "cert":
                    time.sleep(1.0)
                super().create(descriptor)

        report = apply(https_chain, SlowProvider(), options=RunOptions(call_timeout=0.05))

        assert report.entries_for("cert")[0].error == ErrorKind.TIMEOUT
        assert report.entries_for("proxy")[0].error == ErrorKind.DEPENDENCY_FAILED


class TestCancellation:
    """Test cooperative cancellation."""

    def test_pre_cancelled_run_skips_everything(self, https_chain, provider):
        event = threading.Event()
        event.set()

        report = apply(https_chain, provider, options=RunOptions(cancel_event=event))

        assert [e.action for e in report.entries] == [ReportAction.SKIP] * 4
        assert all(e.error == ErrorKind.CANCELLED for e in report.entries)
        assert provider.calls == []

    def test_cancel_mid_run(self, https_chain):
        event = threading.Event()

        class CancellingProvider(InMemoryProvider):
            def create(self, descriptor):
                super().create(descriptor)
                if descriptor.id == "cert":
                    event.set()

        provider = CancellingProvider()
        report = apply(https_chain, provider, options=RunOptions(cancel_event=event))

        assert report.actions()[:2] == [(CREATE, "ip"), (CREATE, "cert")]
        assert [e.error for e in report.entries[2:]] == [ErrorKind.CANCELLED] * 2
        assert provider.mutating_calls() == [("create", "ip"), ("create", "cert")]


class TestValidationBeforeCalls:
    """Invalid descriptor sets make no adapter calls."""

    def test_cycle_makes_zero_calls(self, provider):
        descriptors = [
            ResourceDescriptor(id="a", kind=ResourceKind.VM, depends_on=["b"]),
            ResourceDescriptor(id="b", kind=ResourceKind.VM, depends_on=["a"]),
        ]
        for mode in (RunMode.PLAN, RunMode.APPLY):
            with pytest.raises(CycleDetectedError):
                run(descriptors, provider, mode)

        assert provider.calls == []

    def test_unknown_dependency_makes_zero_calls(self, provider):
        descriptors = [ResourceDescriptor(id="proxy", kind=ResourceKind.HTTPS_PROXY, depends_on=["cert"])]

        with pytest.raises(UnknownDependencyError):
            apply(descriptors, provider)

        assert provider.calls == []

    def test_managed_dependencies_on_vanished_ids_are_ignored(self, provider):
        stale = ResourceDescriptor(id="backend", kind=ResourceKind.BACKEND_SERVICE, depends_on=["gone"])
        provider.put(stale)

        report = apply([], provider, managed=[stale])

        assert report.actions() == [(DELETE, "backend")]


class TestDestroy:
    """Test full teardown."""

    def test_destroy_reverses_creation(self, https_chain, provider):
        apply(https_chain, provider)

        report = destroy(https_chain, provider)

        assert report.actions() == [(DELETE, "rule"), (DELETE, "proxy"), (DELETE, "cert"), (DELETE, "ip")]
        assert provider.resources == {}

    def test_destroy_dry_run(self, https_chain, provider):
        apply(https_chain, provider)

        report = destroy(https_chain, provider, mode=RunMode.PLAN)

        assert report.changes() == [(DELETE, "rule"), (DELETE, "proxy"), (DELETE, "cert"), (DELETE, "ip")]
        assert all(provider.exists(d) for d in https_chain)

    def test_destroy_twice_is_noop(self, https_chain, provider):
        apply(https_chain, provider)
        destroy(https_chain, provider)

        report = destroy(https_chain, provider)

        assert report.is_noop()
