"""
Tests for the workflow reducer.
"""

import pytest

from enrich_setup.constants import MAX_SELECTED_FIELDS
from enrich_setup.errors import (
    FieldCapacityExceeded, GenerationInProgress, InvalidFieldInput, WorkflowError,
)
from enrich_setup.field_registry import get_preset
from enrich_setup.models import EnrichmentField, FieldType
from enrich_setup.workflow import (
    AcceptSuggestion, AddCustomField, AddField, ConfigurePhase, ContinueToFields,
    CredentialsRequired, CsvLoaded, GenerationCompleted, GenerationErrored, GenerationStarted,
    GoBack, RejectSuggestion, RemoveField, Reset, SelectEmailColumn, StartEnrichment,
    TogglePreset, WorkflowState, WorkflowStep, reduce,
)

COLUMNS = ["Name", "Email", "Company", "City"]
ROWS = [
    {"Name": "Ann", "Email": "ann@acme.com", "Company": "Acme", "City": "Boston"},
    {"Name": "Bob", "Email": "bob@globex.com", "Company": "Globex", "City": "Austin"},
    {"Name": "Cid", "Email": "cid@initech.com", "Company": "Initech", "City": "Denver"},
    {"Name": "Dee", "Email": "unknown", "Company": "Hooli", "City": "Miami"},
    {"Name": "Eve", "Email": "pending", "Company": "Umbrella", "City": "Tampa"},
]


def _field(name, display_name=None):
    return EnrichmentField(name=name, display_name=display_name or name.title(), description="Something")


def _run(state, *actions):
    for action in actions:
        state = reduce(state, action)
    return state


def _loaded(**kwargs):
    return reduce(WorkflowState(**kwargs), CsvLoaded(rows=ROWS, columns=COLUMNS))


def _in_fields_phase():
    return reduce(_loaded(), ContinueToFields())


def test_happy_path_emits_configuration_in_selection_order():
    state = _loaded(default_fields=())

    assert state.step is WorkflowStep.CONFIGURE
    assert len(state.rows) == 5 and len(state.columns) == 4
    assert state.detection.column_name == "Email"
    assert state.detection.confidence == 80
    assert state.email_column == "Email"

    state = _run(
        state,
        SelectEmailColumn("Email"),
        ContinueToFields(),
        AddField(get_preset("industry")),
        AddField(get_preset("companyName")),
        AddField(get_preset("employeeCount")),
        StartEnrichment(),
    )

    assert state.step is WorkflowStep.RUNNING
    payload = state.finalized.to_payload()
    assert payload["emailColumn"] == "Email"
    assert [f["name"] for f in payload["fields"]] == ["industry", "companyName", "employeeCount"]


def test_load_seeds_default_selection():
    state = _loaded()
    assert [f.name for f in state.selected_fields] == ["companyName", "companyDescription", "industry"]
    assert state.phase is ConfigurePhase.EMAIL_COLUMN


def test_low_confidence_detection_leaves_column_unset():
    rows = [{"Name": "Ann", "Contact": "ann@acme.com"}, {"Name": "Bob", "Contact": "n/a"}]
    state = reduce(WorkflowState(), CsvLoaded(rows=rows, columns=["Name", "Contact"]))
    assert state.detection.column_name == "Contact"
    assert state.detection.confidence == 25
    assert state.email_column is None
    assert not state.can_continue


def test_empty_upload_rejected():
    with pytest.raises(InvalidFieldInput, match="No data available"):
        reduce(WorkflowState(), CsvLoaded(rows=[], columns=[]))


def test_second_upload_requires_reset():
    with pytest.raises(WorkflowError):
        reduce(_loaded(), CsvLoaded(rows=ROWS, columns=COLUMNS))


def test_select_unknown_column_rejected():
    state = _loaded()
    with pytest.raises(InvalidFieldInput):
        reduce(state, SelectEmailColumn("Phone"))
    assert state.email_column == "Email"


def test_continue_requires_email_column():
    rows = [{"Name": "Ann"}]
    state = reduce(WorkflowState(), CsvLoaded(rows=rows, columns=["Name"]))
    with pytest.raises(WorkflowError):
        reduce(state, ContinueToFields())
    state = _run(state, SelectEmailColumn("Name"), ContinueToFields())
    assert state.phase is ConfigurePhase.FIELDS


def test_field_actions_outside_configure_rejected():
    with pytest.raises(WorkflowError):
        reduce(WorkflowState(), AddField(_field("ceoName")))


def test_duplicate_add_is_ignored():
    state = _loaded()
    again = reduce(state, AddField(get_preset("industry")))
    assert again.selected_fields == state.selected_fields


def test_capacity_error_leaves_state_unchanged():
    state = _loaded()
    while len(state.selected_fields) < MAX_SELECTED_FIELDS:
        state = reduce(state, AddField(_field(f"extra{len(state.selected_fields)}")))
    with pytest.raises(FieldCapacityExceeded):
        reduce(state, AddField(_field("oneTooMany")))
    assert len(state.selected_fields) == MAX_SELECTED_FIELDS


def test_remove_and_toggle():
    state = _run(_loaded(), RemoveField("industry"), RemoveField("industry"))
    assert [f.name for f in state.selected_fields] == ["companyName", "companyDescription"]
    state = _run(state, TogglePreset("revenue"), TogglePreset("companyName"))
    assert [f.name for f in state.selected_fields] == ["companyDescription", "revenue"]


def test_custom_field_gets_unique_name():
    state = reduce(_loaded(), AddCustomField("Industry", "Sub-industry", FieldType.STRING))
    assert state.selected_fields[-1].name == "industry2"
    with pytest.raises(InvalidFieldInput):
        reduce(state, AddCustomField("", "x"))


def test_generation_applies_only_matching_sequence():
    state = reduce(_in_fields_phase(), GenerationStarted())
    first = state.pending_generation
    assert state.generating

    with pytest.raises(GenerationInProgress):
        reduce(state, GenerationStarted())

    stale = reduce(state, GenerationCompleted(first - 1, (_field("ceoName"),)))
    assert stale is state

    state = reduce(state, GenerationCompleted(first, (_field("ceoName"),)))
    assert not state.generating
    assert [f.name for f in state.suggested_fields] == ["ceoName"]
    assert "ceoName" not in [f.name for f in state.selected_fields]


def test_late_result_after_back_navigation_is_discarded():
    state = reduce(_in_fields_phase(), GenerationStarted())
    seq = state.pending_generation
    state = _run(state, GoBack(), GoBack(), Reset())
    assert not state.generating

    after = reduce(state, GenerationCompleted(seq, (_field("ceoName"),)))
    assert after.suggested_fields == ()


def test_new_request_supersedes_old_result():
    state = _run(_in_fields_phase(), GenerationStarted())
    old_seq = state.pending_generation
    state = _run(state, GenerationErrored(old_seq), GenerationStarted())
    assert state.pending_generation == old_seq + 1

    state = reduce(state, GenerationCompleted(old_seq, (_field("ceoName"),)))
    assert state.generating
    assert state.suggested_fields == ()


def test_suggestions_renamed_on_collision_with_selection():
    state = reduce(_in_fields_phase(), GenerationStarted())
    state = reduce(state, GenerationCompleted(state.pending_generation, (_field("industry", "Industry"),)))
    assert state.suggested_fields[0].name == "industry2"


def test_accept_and_reject_suggestions():
    state = reduce(_in_fields_phase(), GenerationStarted())
    state = reduce(state, GenerationCompleted(
        state.pending_generation, (_field("ceoName"), _field("isHiring")),
    ))

    state = reduce(state, AcceptSuggestion(1))
    assert state.selected_fields[-1].name == "isHiring"
    assert [f.name for f in state.suggested_fields] == ["ceoName"]

    state = reduce(state, RejectSuggestion(0))
    assert state.suggested_fields == ()
    assert "ceoName" not in [f.name for f in state.selected_fields]

    with pytest.raises(InvalidFieldInput):
        reduce(state, AcceptSuggestion(0))


def test_custom_field_does_not_take_a_pending_suggestion_name():
    state = reduce(_in_fields_phase(), GenerationStarted())
    state = reduce(state, GenerationCompleted(
        state.pending_generation, (_field("ceoName", "CEO Name"),),
    ))

    state = reduce(state, AddCustomField("CEO Name", "CEO LinkedIn handle"))
    assert state.selected_fields[-1].name == "ceoName2"

    state = reduce(state, AcceptSuggestion(0))
    assert len(state.selected_fields) == 5
    assert [f.name for f in state.selected_fields][-2:] == ["ceoName2", "ceoName"]
    assert state.suggested_fields == ()


def test_accept_renames_suggestion_when_a_later_field_took_its_name():
    state = reduce(_in_fields_phase(), GenerationStarted())
    state = reduce(state, GenerationCompleted(
        state.pending_generation, (_field("revenue", "Revenue"),),
    ))
    state = reduce(state, TogglePreset("revenue"))

    state = reduce(state, AcceptSuggestion(0))

    names = [f.name for f in state.selected_fields]
    assert names[-2:] == ["revenue", "revenue2"]
    assert len(set(names)) == len(names)
    assert state.selected_fields[-1].description == "Something"


def test_accept_at_capacity_keeps_suggestion():
    state = _in_fields_phase()
    while len(state.selected_fields) < MAX_SELECTED_FIELDS:
        state = reduce(state, AddField(_field(f"extra{len(state.selected_fields)}")))
    state = reduce(state, GenerationStarted())
    state = reduce(state, GenerationCompleted(state.pending_generation, (_field("ceoName"),)))

    with pytest.raises(FieldCapacityExceeded):
        reduce(state, AcceptSuggestion(0))
    assert len(state.suggested_fields) == 1


def test_generation_error_clears_pending_without_touching_selection():
    state = _in_fields_phase()
    started = reduce(state, GenerationStarted())
    failed = reduce(started, GenerationErrored(started.pending_generation))
    assert not failed.generating
    assert failed.selected_fields == state.selected_fields


def test_start_requires_fields_phase_and_a_field():
    with pytest.raises(WorkflowError):
        reduce(_loaded(), StartEnrichment())

    empty = _run(_in_fields_phase(), RemoveField("companyName"), RemoveField("companyDescription"),
                 RemoveField("industry"))
    assert not empty.can_start
    with pytest.raises(WorkflowError):
        reduce(empty, StartEnrichment())


def test_go_back_walks_the_steps():
    running = reduce(_in_fields_phase(), StartEnrichment())

    state = reduce(running, GoBack())
    assert state.step is WorkflowStep.CONFIGURE and state.phase is ConfigurePhase.FIELDS
    assert state.finalized is None

    state = reduce(state, GoBack())
    assert state.phase is ConfigurePhase.EMAIL_COLUMN

    state = reduce(state, GoBack())
    assert state.step is WorkflowStep.UPLOAD
    assert state.columns == tuple(COLUMNS)
    assert state.selected_fields == ()

    assert reduce(state, GoBack()) == state


def test_reset_clears_dataset():
    state = reduce(_in_fields_phase(), Reset())
    assert state.step is WorkflowStep.UPLOAD
    assert state.columns == ()
    assert state.email_column is None
    assert state.selected_fields == ()


def test_credentials_required_holds_dataset_in_upload():
    state = reduce(WorkflowState(), CredentialsRequired(
        missing=["OPENAI_API_KEY"], rows=ROWS, columns=COLUMNS,
    ))
    assert state.step is WorkflowStep.UPLOAD
    assert state.missing_credentials == ("OPENAI_API_KEY",)
    assert len(state.rows) == 5

    state = reduce(state, CsvLoaded(rows=state.rows, columns=state.columns))
    assert state.step is WorkflowStep.CONFIGURE
    assert state.missing_credentials == ()


def test_unknown_action_rejected():
    with pytest.raises(WorkflowError):
        reduce(WorkflowState(), object())
