# tests/core/test_collaborators.py
"""
Testes dos contratos de colaboradores externos.

Os testes asseguram que:
- respostas de uma ParameterSource viram options (constante ou Rows)
- cancelamento produz options vazias
- o editor de jobs trabalha sobre uma cópia e tem endereços validados
- o progresso é registrado como eventos estruturados
"""
import pytest

try:
    from pebl_flow.core.addressing import parse_address
    from pebl_flow.core.collaborators import (
        StaticParameterSource,
        checked_edit,
        collect_options,
        estimate_remaining,
        log_progress,
    )
    from pebl_flow.core.exceptions import AddressError
    from pebl_flow.core.pipeline.types import Rows
except Exception as e:  # noqa: BLE001
    collect_options = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"Missing collaborators. Import error: {_IMPORT_ERR}")


def test_collect_options_builds_constants_and_rows():
    _require_imports()

    source = StaticParameterSource({"flag": ["-n"], "word": ["this", "that"]})

    options = collect_options(source, ["flag", "word"])

    assert options == ["-n", Rows(["this", "that"])]
    assert source.asked == ["flag", "word"]


def test_collect_options_cancelled_returns_empty():
    _require_imports()

    source = StaticParameterSource({"flag": ["-n"]})

    assert collect_options(source, ["flag", "unknown", "never"]) == []
    assert source.asked == ["flag", "unknown"]


def test_checked_edit_works_on_copy(sample_job):
    _require_imports()

    def editor(job, addresses):
        job[0]["load"]["prefix"] = "edited"
        return job, ["[0].load.prefix"]

    edited, addresses = checked_edit(editor, sample_job, [])

    assert edited[0]["load"]["prefix"] == "edited"
    assert sample_job[0]["load"]["prefix"] == "raw"
    assert addresses == [parse_address("[0].load.prefix")]


def test_checked_edit_rejects_stale_addresses(sample_job):
    _require_imports()

    def editor(job, addresses):
        del job[1]
        return job, addresses

    with pytest.raises(AddressError):
        checked_edit(editor, sample_job, [parse_address("[1].scale.factor")])


def test_estimate_remaining():
    _require_imports()

    assert estimate_remaining(2, 4, 10.0) == pytest.approx(10.0)
    assert estimate_remaining(0, 4, 1.0) is None
    assert estimate_remaining(3, None, 1.0) is None


def test_log_progress_records_events(dummy_ctx):
    _require_imports()

    report = log_progress(dummy_ctx, clock=lambda: 12.0)
    report(1, 3, 10.0, "step (loop 1)")

    (event,) = dummy_ctx.events_for("engine")
    assert event["message"] == "progress"
    assert event["elapsed"] == 2.0
    assert event["remaining"] == pytest.approx(4.0)
    assert event["label"] == "step (loop 1)"
