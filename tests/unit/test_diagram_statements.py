import pytest

from mermaid_sequence import Diagram, DiagramConfig, DiagramError, MessageFormatError
from mermaid_sequence.mermaid_fmt import ARROWS, sq_message, sq_note


def body(diagram: Diagram) -> list[str]:
    """Emitted lines without the header."""
    return list(diagram.lines[1:])


def test_end_to_end_participants_and_messages():
    d = (
        Diagram()
        .participant("A")
        .participant("B")
        .lf()
        .sync_request("A", "B", "hi")
        .sync_response("B", "A", "ok")
    )
    assert d.render() == (
        "sequenceDiagram\n"
        "    participant A\n"
        "    participant B\n"
        "\n"
        "    A->>B: hi\n"
        "    B-->>A: ok"
    )
    assert d.last_error() is None


def test_fresh_diagram_renders_header_only():
    assert Diagram().render() == "sequenceDiagram"


@pytest.mark.parametrize(
    "method, expected",
    [
        ("sync_request", "    A->>B: m"),
        ("sync_response", "    A-->>B: m"),
        ("async_request", "    A-)B: m"),
        ("async_response", "    A--)B: m"),
        ("request_error", "    A-xB: m"),
        ("response_error", "    A--xB: m"),
    ],
)
def test_message_arrow_tokens(method, expected):
    d = getattr(Diagram(), method)("A", "B", "m")
    assert body(d) == [expected]


def test_arrow_table_is_distinct():
    assert len(set(ARROWS.values())) == len(ARROWS)


def test_actor_and_activation_lines():
    d = Diagram().actor("User").activate("User").deactivate("User")
    assert body(d) == ["    actor User", "    activate User", "    deactivate User"]


def test_notes_by_placement():
    d = (
        Diagram()
        .note_over("A", "solo")
        .note_over(["A", "B"], "spanning")
        .note_left_of("A", "left")
        .note_right_of("B", "right")
    )
    assert body(d) == [
        "    Note over A: solo",
        "    Note over A,B: spanning",
        "    Note left of A: left",
        "    Note right of B: right",
    ]


def test_note_without_participants_latches():
    d = Diagram().note_over([], "nobody").participant("A")
    assert isinstance(d.last_error(), DiagramError)
    assert body(d) == []


def test_note_with_non_string_participant_latches():
    d = Diagram().note_over(["A", 1], "x").note_left_of(["A", "B"], "y").participant("A")  # type: ignore[arg-type]
    err = d.last_error()
    assert isinstance(err, DiagramError)
    assert isinstance(err.__cause__, ValueError)
    assert body(d) == []


def test_note_with_non_iterable_participants_latches():
    d = Diagram().note_over(7, "x")  # type: ignore[arg-type]
    assert isinstance(d.last_error(), DiagramError)
    assert body(d) == []


def test_lines_start_with_header():
    d = Diagram().participant("A")
    assert d.lines == ("sequenceDiagram", "    participant A")
    assert d.render() == "\n".join(d.lines)


def test_sq_note_rejects_multiple_participants_for_side_placement():
    with pytest.raises(ValueError):
        sq_note("left of", ["A", "B"], "x")


def test_sq_message_rejects_unknown_arrow():
    with pytest.raises(ValueError):
        sq_message("A", "sideways", "B", "x")  # type: ignore[arg-type]


def test_lf_is_empty_and_does_not_change_indent():
    d = Diagram().lf().sync_request("A", "B", "x").lf()
    assert body(d) == ["", "    A->>B: x", ""]


def test_content_is_not_escaped():
    d = Diagram().sync_request("A", "B", "a: b; <c> #d")
    assert body(d) == ["    A->>B: a: b; <c> #d"]


def test_formatted_variants_interpolate():
    d = (
        Diagram()
        .sync_requestf("A", "B", "GET /items/{}", 42)
        .sync_responsef("B", "A", "{status} {reason}", status=200, reason="OK")
        .async_requestf("A", "B", "job {0}", "j1")
        .async_responsef("B", "A", "done {0}", "j1")
        .request_errorf("A", "B", "retry {n}", n=3)
        .response_errorf("B", "A", "{:.1f}s timeout", 1.5)
    )
    assert body(d) == [
        "    A->>B: GET /items/42",
        "    B-->>A: 200 OK",
        "    A-)B: job j1",
        "    B--)A: done j1",
        "    A-xB: retry 3",
        "    B--xA: 1.5s timeout",
    ]


def test_format_failure_latches_instead_of_raising():
    d = Diagram().participant("A").sync_requestf("A", "B", "{missing}").participant("B")

    err = d.last_error()
    assert isinstance(err, MessageFormatError)
    assert isinstance(err.__cause__, KeyError)
    # Nothing is appended once the latch is set.
    assert body(d) == ["    participant A"]


def test_first_failure_wins_across_calls():
    d = Diagram().sync_requestf("A", "B", "{0} {1}", "only-one").sync_requestf("A", "B", "{x}")
    err = d.last_error()
    assert isinstance(err, MessageFormatError)
    assert isinstance(err.__cause__, IndexError)


def test_render_is_idempotent_and_available_after_failure():
    d = Diagram().participant("A").loop_end().participant("B")
    first = d.render()
    assert first == d.render() == str(d)
    assert first == "sequenceDiagram\n    participant A"
    assert d.last_error() is not None


def test_crlf_separator_applies_to_every_line():
    d = Diagram(config=DiagramConfig(line_separator="\r\n")).participant("A").lf().actor("B")
    assert d.render() == "sequenceDiagram\r\n    participant A\r\n\r\n    actor B"


def test_config_rejects_other_separators():
    with pytest.raises(ValueError):
        DiagramConfig(line_separator="\r")
    with pytest.raises(ValueError):
        DiagramConfig.from_name("cr")
    assert DiagramConfig.from_name("crlf").line_separator == "\r\n"


def test_instances_share_no_state():
    a = Diagram().participant("A")
    b = Diagram().loop_end()
    assert a.last_error() is None
    assert b.last_error() is not None
    assert body(a) == ["    participant A"]
    assert body(b) == []
