"""Tests for BisectionEngine with fake runners and resolvers."""

import io
import math

import pytest

from relbisect.bisection.engine import BisectionEngine, BisectObserver, midpoint
from relbisect.bisection.models import BisectError, BisectStatus
from relbisect.bisection.report import LoggingObserver
from relbisect.runner.models import InconclusiveKind, RunOptions, TestResult, TestStatus
from relbisect.runner.resolvers import (
    ExecutableNotFoundError,
    ExecutableResolver,
    InvalidPayloadError,
    Payload,
    PayloadResolver,
)
from relbisect.versioning.catalog import VersionCatalog

PASS = TestResult.passed()
FAIL = TestResult.failed()
CRASH = TestResult.inconclusive(InconclusiveKind.ABNORMAL_EXIT, exit_code=3, detail="exited with code 3")
NO_LAUNCH = TestResult.inconclusive(InconclusiveKind.LAUNCH_FAILURE, detail="Could not start")


def versions(count):
    return [f"1.{i}.0" for i in range(count)]


class FakeExecutableResolver(ExecutableResolver):
    def __init__(self, missing=()):
        self.missing = set(missing)
        self.calls = []

    def resolve(self, version_or_path):
        self.calls.append(version_or_path)
        if version_or_path in self.missing:
            raise ExecutableNotFoundError(f"Version {version_or_path} is not installed")
        return f"/builds/{version_or_path}/electron"


class FakePayloadResolver(PayloadResolver):
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = 0

    def resolve(self, source):
        self.calls += 1
        if self.fail:
            raise InvalidPayloadError(f"Invalid payload: {source!r}")
        return Payload(source=source, entry_path="/payload/main.js")


class FakeRunner:
    """Answers each run from a version -> TestResult mapping."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.runs = []

    def run_once(self, executable, entry_path, options=None, *, version=None, source=None):
        version = executable.split("/")[2]
        self.runs.append(version)
        return self.outcomes[version]


class RecordingObserver(BisectObserver):
    def __init__(self):
        self.events = []

    def bisect_started(self, versions, source):
        self.events.append(("started", len(versions), source))

    def step_completed(self, step):
        self.events.append(("step", str(step.version)))

    def bisect_finished(self, result):
        self.events.append(("finished", result.status))


def make_engine(names, outcomes, *, observer=None, executables=None, payloads=None):
    runner = FakeRunner(dict(zip(names, outcomes)))
    engine = BisectionEngine(
        VersionCatalog(names),
        runner,
        executables or FakeExecutableResolver(),
        payloads or FakePayloadResolver(),
        observer=observer,
    )
    return engine, runner


def boundary_outcomes(count, first_bad):
    return [PASS if i < first_bad else FAIL for i in range(count)]


class TestMidpoint:
    """Tests for midpoint()."""

    @pytest.mark.parametrize("left, right, expected", [
        (0, 4, 2), (0, 3, 2), (0, 2, 1), (2, 4, 3), (3, 4, 4), (0, 99, 50), (50, 99, 75),
    ])
    def test_rounds_halves_up(self, left, right, expected):
        assert midpoint(left, right) == expected

    def test_strictly_inside(self):
        for left in range(20):
            for right in range(left + 2, 40):
                assert left < midpoint(left, right) < right


class TestBisectSuccess:
    """Sessions that find a boundary."""

    def test_finds_boundary(self):
        names = versions(5)
        engine, runner = make_engine(names, [PASS, PASS, PASS, FAIL, FAIL])

        result = engine.bisect("1.0.0", "1.4.0", "payload")

        assert result.status is BisectStatus.SUCCEEDED
        assert result.range == ("1.2.0", "1.3.0")
        assert runner.runs == ["1.2.0", "1.3.0"]
        assert [s.order for s in result.steps] == [1, 2]
        assert [s.index for s in result.steps] == [2, 3]
        assert [str(v) for v in result.versions] == names

    def test_endpoints_in_either_order(self):
        names = versions(5)
        engine, _ = make_engine(names, [PASS, PASS, PASS, FAIL, FAIL])
        assert engine.bisect("1.4.0", "1.0.0", "payload").range == ("1.2.0", "1.3.0")

    def test_endpoints_accept_v_prefix(self):
        names = versions(5)
        engine, _ = make_engine(names, [PASS, PASS, PASS, FAIL, FAIL])
        assert engine.bisect("v1.0.0", "v1.4.0", "payload").succeeded

    @pytest.mark.parametrize("first_bad", [2, 37, 50, 97])
    def test_large_range_is_logarithmic(self, first_bad):
        names = versions(100)
        engine, runner = make_engine(names, boundary_outcomes(100, first_bad))

        result = engine.bisect("1.0.0", "1.99.0", "payload")

        assert result.succeeded
        assert result.range == (names[first_bad - 1], names[first_bad])
        assert len(runner.runs) <= math.ceil(math.log2(99))
        assert len(set(runner.runs)) == len(runner.runs)

    def test_sub_range_of_catalog(self):
        names = versions(10)
        engine, runner = make_engine(names, boundary_outcomes(10, 5))
        result = engine.bisect("1.3.0", "1.7.0", "payload")
        assert result.range == ("1.4.0", "1.5.0")
        assert all(v in names[3:8] for v in runner.runs)

    def test_payload_resolved_once(self):
        payloads = FakePayloadResolver()
        engine, runner = make_engine(versions(20), boundary_outcomes(20, 7), payloads=payloads)
        engine.bisect("1.0.0", "1.19.0", "payload")
        assert payloads.calls == 1
        assert len(runner.runs) > 1

    def test_observer_sees_every_step(self):
        observer = RecordingObserver()
        engine, _ = make_engine(versions(5), [PASS, PASS, PASS, FAIL, FAIL], observer=observer)
        engine.bisect("1.0.0", "1.4.0", "my-payload")
        assert observer.events == [
            ("started", 5, "my-payload"),
            ("step", "1.2.0"),
            ("step", "1.3.0"),
            ("finished", BisectStatus.SUCCEEDED),
        ]

    def test_observer_errors_do_not_change_result(self, caplog):
        class Broken(BisectObserver):
            def step_completed(self, step):
                raise RuntimeError("display broke")

        engine, _ = make_engine(versions(5), [PASS, PASS, PASS, FAIL, FAIL], observer=Broken())
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        assert result.range == ("1.2.0", "1.3.0")
        assert "display broke" in caplog.text


class TestBisectFailure:
    """Sessions that end without a boundary."""

    def test_unknown_version(self):
        observer = RecordingObserver()
        engine, runner = make_engine(versions(5), [PASS] * 5, observer=observer)
        result = engine.bisect("1.0.0", "9.9.9", "payload")
        assert result.error is BisectError.UNKNOWN_VERSION
        assert "9.9.9" in result.message
        assert runner.runs == []
        assert observer.events == [("finished", BisectStatus.FAILED)]

    def test_same_endpoints_is_degenerate(self):
        engine, runner = make_engine(versions(5), [PASS] * 5)
        result = engine.bisect("1.2.0", "v1.2.0", "payload")
        assert result.error is BisectError.DEGENERATE_RANGE
        assert runner.runs == []

    def test_adjacent_endpoints_converge_without_running(self):
        engine, runner = make_engine(versions(5), [PASS] * 5)
        result = engine.bisect("1.2.0", "1.3.0", "payload")
        assert result.error is BisectError.CONVERGENCE_FAILURE
        assert runner.runs == []

    def test_all_passing(self):
        engine, runner = make_engine(versions(5), [PASS] * 5)
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        assert result.status is BisectStatus.FAILED
        assert result.error is BisectError.CONVERGENCE_FAILURE
        assert runner.runs == ["1.2.0", "1.3.0"]
        assert result.range is None

    def test_boundary_at_first_version_is_not_reported(self):
        # the left endpoint is never run, so no recorded pass exists
        engine, runner = make_engine(versions(5), [PASS, FAIL, FAIL, FAIL, FAIL])
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        assert result.error is BisectError.CONVERGENCE_FAILURE
        assert runner.runs == ["1.2.0", "1.1.0"]

    def test_abnormal_exit_aborts(self):
        engine, runner = make_engine(versions(9), [PASS, PASS, PASS, PASS, CRASH, FAIL, FAIL, FAIL, FAIL])
        result = engine.bisect("1.0.0", "1.8.0", "payload")
        assert result.error is BisectError.ABNORMAL_EXIT
        assert runner.runs == ["1.4.0"]
        assert "1.4.0" in result.message
        assert "exited with code 3" in result.message
        assert [s.result for s in result.steps] == [CRASH]

    def test_launch_failure_aborts(self):
        engine, runner = make_engine(versions(5), [PASS, PASS, PASS, NO_LAUNCH, FAIL])
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        assert result.error is BisectError.LAUNCH_FAILURE
        assert runner.runs == ["1.2.0", "1.3.0"]
        assert len(result.steps) == 2

    def test_missing_executable_is_system_error(self):
        executables = FakeExecutableResolver(missing={"1.3.0"})
        engine, runner = make_engine(
            versions(5), [PASS, PASS, PASS, FAIL, FAIL], executables=executables
        )
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        assert result.error is BisectError.SYSTEM_ERROR
        assert "1.3.0" in result.message
        assert runner.runs == ["1.2.0"]
        assert len(result.steps) == 1

    def test_missing_first_executable_reports_a_started_session(self):
        out = io.StringIO()
        executables = FakeExecutableResolver(missing={"1.2.0"})
        engine, runner = make_engine(
            versions(5), [PASS] * 5, executables=executables, observer=LoggingObserver(out)
        )
        result = engine.bisect("1.0.0", "1.4.0", "payload")
        text = out.getvalue()
        assert result.error is BisectError.SYSTEM_ERROR
        assert runner.runs == []
        assert "📐 Bisect Requested" in text
        assert "Bisect not started" not in text
        assert "❌ Bisect failed (system-error)" in text

    def test_invalid_payload_is_system_error(self):
        observer = RecordingObserver()
        engine, runner = make_engine(
            versions(5), [PASS] * 5, observer=observer, payloads=FakePayloadResolver(fail=True)
        )
        result = engine.bisect("1.0.0", "1.4.0", "bogus")
        assert result.error is BisectError.SYSTEM_ERROR
        assert runner.runs == []
        assert observer.events == [("finished", BisectStatus.FAILED)]


class TestSingleTest:
    """Tests for BisectionEngine.test()."""

    def test_runs_known_version(self):
        engine, runner = make_engine(versions(3), [PASS, FAIL, PASS])
        assert engine.test("1.1.0", "payload", RunOptions()) == FAIL
        assert runner.runs == ["1.1.0"]

    def test_unknown_target_raises(self):
        engine, _ = make_engine(versions(3), [PASS] * 3, executables=FakeExecutableResolver(missing={"x"}))
        with pytest.raises(ExecutableNotFoundError):
            engine.test("x", "payload")

    def test_invalid_payload_raises(self):
        engine, _ = make_engine(versions(3), [PASS] * 3, payloads=FakePayloadResolver(fail=True))
        with pytest.raises(InvalidPayloadError):
            engine.test("1.0.0", "payload")

    def test_result_status_passthrough(self):
        engine, _ = make_engine(versions(3), [CRASH, PASS, PASS])
        assert engine.test("1.0.0", "payload").status is TestStatus.INCONCLUSIVE
