import io
import os
from datetime import datetime

import pytest
from rich.console import Console

from rulebench.errors import FixtureReadError, ReportEmissionError
from rulebench.models import BenchmarkResult, InvocationRecord, ReportLine, RunStatus
from rulebench.reporter import (
    RichReporter,
    TextReporter,
    format_duration,
    render_line,
    render_summary,
)


@pytest.mark.parametrize("seconds, expected", [
    (0.0, "0.0ms"),
    (0.8502, "850.2ms"),
    (1.2344, "1.234s"),
    (59.5, "59.500s"),
    (123.4567, "2m03.457s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_render_ok_line():
    record = InvocationRecord(label="inputs/a.json", start=10.0, end=11.5, exit_status=0)
    assert render_line(ReportLine.from_record(record)) == "inputs/a.json  1.500s  ok"


def test_render_engine_failure_line():
    record = InvocationRecord(label="inputs/b.json", start=0.0, end=0.25, exit_status=3)
    line = ReportLine.from_record(record)

    assert line.status == RunStatus.ENGINE_FAILED
    assert render_line(line) == "inputs/b.json  250.0ms  FAILED (exit 3)"


def test_render_signal_failure_line():
    record = InvocationRecord(label="c", start=0.0, end=2.0, exit_status=-9)
    assert render_line(ReportLine.from_record(record)).endswith("FAILED (signal 9)")


def test_render_read_error_line():
    line = ReportLine.read_failure(FixtureReadError("inputs/c.json", "Permission denied"))
    assert render_line(line) == "inputs/c.json  --  READ ERROR: Permission denied"


def test_text_reporter_streams_each_line():
    stream = io.StringIO()
    reporter = TextReporter(stream)

    reporter.announce("inputs/a.json")
    assert stream.getvalue() == "Running inputs/a.json...\n"

    reporter.report(ReportLine(label="inputs/a.json", status=RunStatus.OK, elapsed_seconds=0.5))
    assert stream.getvalue().splitlines()[-1] == "inputs/a.json  500.0ms  ok"


def test_text_reporter_summary():
    result = BenchmarkResult(run_id="run_x", start_time=datetime.now())
    result.add_record(InvocationRecord(label="a", start=0.0, end=1.0, exit_status=0))
    result.add_record(InvocationRecord(label="b", start=0.0, end=2.0, exit_status=1))
    for record in result.records:
        result.add_line(ReportLine.from_record(record))

    assert render_summary(result) == (
        "2 fixture(s): 1 ok, 1 engine failure(s), 0 read error(s); engine time 3.000s"
    )


def test_closed_stream_raises_report_emission_error():
    stream = io.StringIO()
    stream.close()

    with pytest.raises(ReportEmissionError):
        TextReporter(stream).announce("inputs/a.json")


def test_broken_pipe_raises_report_emission_error():
    class BrokenStream(io.StringIO):
        def write(self, text):
            raise BrokenPipeError("stdout closed")

    with pytest.raises(ReportEmissionError, match="stdout closed"):
        TextReporter(BrokenStream()).report(
            ReportLine(label="a", status=RunStatus.OK, elapsed_seconds=1.0)
        )


def test_rich_reporter_prints_label_and_status():
    buffer = io.StringIO()
    reporter = RichReporter(Console(file=buffer, width=120, color_system=None))

    reporter.announce("inputs/[weird].json")
    reporter.report(ReportLine(
        label="inputs/[weird].json",
        status=RunStatus.ENGINE_FAILED,
        elapsed_seconds=1.0,
        exit_status=4,
    ))

    output = buffer.getvalue()
    assert "Running inputs/[weird].json..." in output
    assert "inputs/[weird].json  1.000s  FAILED (exit 4)" in output


def test_rich_reporter_summary_table():
    buffer = io.StringIO()
    reporter = RichReporter(Console(file=buffer, width=120, color_system=None))
    result = BenchmarkResult(run_id="run_x", start_time=datetime.now())
    result.add_line(ReportLine(label="a", status=RunStatus.OK, elapsed_seconds=1.0))

    reporter.finish(result)

    output = buffer.getvalue()
    assert "Benchmark Results" in output
    assert "Fixtures" in output


def test_rich_reporter_keeps_long_label_on_one_line():
    buffer = io.StringIO()
    # Width rich uses when stdout is piped to a file or log
    reporter = RichReporter(Console(file=buffer, width=80, color_system=None))
    label = "inputs/" + "very_long_fixture_name_" * 5 + ".json"
    assert len(label) > reporter.console.width

    reporter.announce(label)
    reporter.report(ReportLine(label=label, status=RunStatus.OK, elapsed_seconds=1.0))

    assert buffer.getvalue().splitlines() == [
        f"▶ Running {label}...",
        f"✓ {label}  1.000s  ok",
    ]


def test_non_utf8_label_is_rendered_with_replacement_character():
    label = os.fsdecode(b"inputs/b\xff.json")
    stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8", write_through=True)
    reporter = TextReporter(stream)

    reporter.announce(label)
    reporter.report(ReportLine(label=label, status=RunStatus.OK, elapsed_seconds=0.5))

    assert stream.buffer.getvalue().decode("utf-8").splitlines() == [
        "Running inputs/b�.json...",
        "inputs/b�.json  500.0ms  ok",
    ]
