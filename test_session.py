"""
Tests for the EnrichmentSetup session driver.
"""

import asyncio
import importlib

import pytest

from enrich_setup import config
from enrich_setup.credentials import EnvironmentCredentials, InMemoryCredentials, missing_credentials
from enrich_setup.errors import (
    GenerationFailed, GenerationInProgress, InvalidFieldInput, WorkflowError,
)
from enrich_setup.models import EnrichmentField
from enrich_setup.session import EnrichmentSetup
from enrich_setup.workflow import ConfigurePhase, WorkflowStep

KEYS = {"FIRECRAWL_API_KEY": "fc-test", "OPENAI_API_KEY": "sk-test"}
COLUMNS = ["Name", "Email"]
ROWS = [
    {"Name": "Ann", "Email": "ann@acme.com"},
    {"Name": "Bob", "Email": "bob@gmail.com"},
    {"Name": "Cid", "Email": ""},
]


class FakeProposer:
    """Returns canned suggestions, or raises, optionally after a gate opens."""

    def __init__(self, fields=None, error=None):
        self.fields = fields or []
        self.error = error
        self.calls = []
        self.gate = None

    async def propose(self, prompt, existing_names=()):
        self.calls.append((prompt, list(existing_names)))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.fields)


def _field(name):
    return EnrichmentField(name=name, display_name=name, description="Something")


def _setup(proposer=None, executor=None, keys=KEYS):
    return EnrichmentSetup(
        credentials=InMemoryCredentials(keys),
        proposer=proposer,
        executor=executor,
    )


def _configured(proposer=None, executor=None):
    setup = _setup(proposer, executor)
    setup.upload(ROWS, COLUMNS)
    setup.continue_to_fields()
    return setup


def test_missing_credentials_in_order():
    provider = InMemoryCredentials({"OPENAI_API_KEY": "sk"})
    assert missing_credentials(provider, ["FIRECRAWL_API_KEY", "OPENAI_API_KEY"]) == ["FIRECRAWL_API_KEY"]


def test_environment_keys_survive_malformed_service_settings(monkeypatch):
    monkeypatch.setenv("FIELD_GENERATION_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("FIRECRAWL_API_KEY", "  fc-env  ")

    importlib.reload(config)

    assert config.get_env("FIRECRAWL_API_KEY") == "fc-env"
    assert EnvironmentCredentials().get("FIRECRAWL_API_KEY") == "fc-env"


def test_upload_waits_for_credentials():
    setup = _setup(keys={})
    setup.upload(ROWS, COLUMNS)

    assert setup.step is WorkflowStep.UPLOAD
    assert setup.state.missing_credentials == ("FIRECRAWL_API_KEY", "OPENAI_API_KEY")

    setup.provide_credentials(FIRECRAWL_API_KEY="fc-test")
    assert setup.step is WorkflowStep.UPLOAD
    assert setup.state.missing_credentials == ("OPENAI_API_KEY",)

    setup.provide_credentials(OPENAI_API_KEY="sk-test")
    assert setup.step is WorkflowStep.CONFIGURE
    assert setup.state.email_column == "Email"
    assert setup.credentials.get("OPENAI_API_KEY") == "sk-test"


def test_blank_credential_rejected():
    setup = _setup(keys={})
    setup.upload(ROWS, COLUMNS)
    with pytest.raises(InvalidFieldInput):
        setup.provide_credentials(OPENAI_API_KEY="  ")
    assert setup.credentials.get("OPENAI_API_KEY") is None


def test_skip_summary():
    setup = _setup()
    assert setup.skip_summary().total == 0
    setup.upload(ROWS, COLUMNS)
    summary = setup.skip_summary()
    assert (summary.enrichable, summary.personal_domain, summary.empty) == (1, 1, 1)


def test_add_preset_and_custom_fields():
    setup = _configured()
    setup.add_preset("revenue")
    setup.add_custom_field("CEO Name", "Full name of the CEO")
    assert [f.name for f in setup.selected_fields][-2:] == ["revenue", "ceoName"]

    with pytest.raises(InvalidFieldInput):
        setup.add_preset("shoeSize")


async def test_generate_fields_adds_suggestions_only():
    proposer = FakeProposer(fields=[_field("ceoName"), _field("isHiring")])
    setup = _configured(proposer)
    before = setup.selected_fields

    added = await setup.generate_fields("leadership and hiring")

    assert [f.name for f in added] == ["ceoName", "isHiring"]
    assert setup.selected_fields == before
    assert not setup.state.generating
    assert proposer.calls[0][1] == ["companyName", "companyDescription", "industry"]


async def test_generation_failure_leaves_selection_unchanged():
    setup = _configured(FakeProposer(error=GenerationFailed("Invalid response format")))
    before = setup.selected_fields

    with pytest.raises(GenerationFailed):
        await setup.generate_fields("funding details")

    assert setup.selected_fields == before
    assert setup.suggested_fields == []
    assert not setup.state.generating


async def test_unexpected_error_still_clears_pending_generation():
    setup = _configured(FakeProposer(error=RuntimeError("boom")))
    with pytest.raises(RuntimeError):
        await setup.generate_fields("funding details")
    assert not setup.state.generating


async def test_concurrent_generation_rejected():
    proposer = FakeProposer(fields=[_field("ceoName")])
    proposer.gate = asyncio.Event()
    setup = _configured(proposer)

    first = asyncio.ensure_future(setup.generate_fields("leadership"))
    await asyncio.sleep(0)
    assert setup.state.generating

    with pytest.raises(GenerationInProgress):
        await setup.generate_fields("hiring")

    proposer.gate.set()
    assert [f.name for f in await first] == ["ceoName"]


async def test_result_after_reset_is_discarded():
    proposer = FakeProposer(fields=[_field("ceoName")])
    proposer.gate = asyncio.Event()
    setup = _configured(proposer)

    pending = asyncio.ensure_future(setup.generate_fields("leadership"))
    await asyncio.sleep(0)
    setup.reset()
    proposer.gate.set()

    assert await pending == []
    assert setup.suggested_fields == []


async def test_generation_requires_proposer_and_prompt():
    with pytest.raises(WorkflowError):
        await _configured().generate_fields("anything")
    with pytest.raises(InvalidFieldInput):
        await _configured(FakeProposer()).generate_fields("  ")


async def test_accept_suggestion_moves_it_into_selection():
    setup = _configured(FakeProposer(fields=[_field("ceoName")]))
    await setup.generate_fields("leadership")
    setup.accept_suggestion(0)
    assert setup.selected_fields[-1].name == "ceoName"
    assert setup.suggested_fields == []


def test_start_enrichment_hands_off_configuration():
    received = []
    setup = _configured(executor=received.append)

    config = setup.start_enrichment()

    assert setup.step is WorkflowStep.RUNNING
    assert received == [config]
    assert config.email_column == "Email"
    assert config.output_columns == ["companyName", "companyDescription", "industry"]


def test_failed_hand_off_leaves_session_configurable():
    def failing_executor(config):
        raise RuntimeError("executor unavailable")

    setup = _configured(executor=failing_executor)
    before = setup.state

    with pytest.raises(RuntimeError):
        setup.start_enrichment()

    assert setup.step is WorkflowStep.CONFIGURE
    assert setup.state is before
    assert setup.state.finalized is None

    received = []
    setup.executor = received.append
    config = setup.start_enrichment()
    assert setup.step is WorkflowStep.RUNNING
    assert received == [config]


async def test_accepted_suggestion_survives_custom_field_with_same_label():
    proposer = FakeProposer(fields=[
        EnrichmentField(name="ceoName", display_name="CEO Name", description="Name of the CEO"),
    ])
    setup = _configured(proposer)
    await setup.generate_fields("who runs the company")

    setup.add_custom_field("CEO Name", "CEO LinkedIn handle")
    setup.accept_suggestion(0)

    assert len(setup.selected_fields) == 5
    assert [f.description for f in setup.selected_fields][-2:] == [
        "CEO LinkedIn handle", "Name of the CEO",
    ]
    assert setup.suggested_fields == []


def test_go_back_from_fields():
    setup = _configured()
    setup.go_back()
    assert setup.state.phase is ConfigurePhase.EMAIL_COLUMN
