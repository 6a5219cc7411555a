import pytest

from queuefleet import queues
from queuefleet.errors import ConfigurationError, InvalidMessageError, QueueTransportError
from queuefleet.queues import available_queues, get_queue_handle, register_queue
from queuefleet.queues.base import Outcome, QueueHandle, TakeResult, take_one
from queuefleet.queues.spool import SpoolQueue

from conftest import ScriptedHandle


@pytest.mark.parametrize(
    "step, outcome",
    [
        (TakeResult.empty(), Outcome.EMPTY),
        (TakeResult.processed({"id": 1}), Outcome.PROCESSED),
        (TakeResult.invalid("bad"), Outcome.INVALID_MESSAGE),
        (TakeResult.transport_error("down"), Outcome.TRANSPORT_ERROR),
        (InvalidMessageError("bad", "raw"), Outcome.INVALID_MESSAGE),
        (QueueTransportError("down"), Outcome.TRANSPORT_ERROR),
        (KeyError("missing"), Outcome.UNCLASSIFIED),
    ],
)
def test_take_one_classifies_results_and_exceptions(step, outcome):
    assert take_one(ScriptedHandle([step])).outcome is outcome


def test_take_one_keeps_invalid_message_detail():
    result = take_one(ScriptedHandle([InvalidMessageError("bad payload", "{")]))

    assert result.reason == "bad payload"
    assert result.message == "{"


def test_take_one_rejects_foreign_return_values():
    class Sloppy(QueueHandle):
        def take_and_process_one(self):
            return "done"

    result = take_one(Sloppy())

    assert result.outcome is Outcome.UNCLASSIFIED
    assert "expected TakeResult" in result.reason


def test_fatal_outcomes():
    assert {o for o in Outcome if o.is_fatal} == {Outcome.TRANSPORT_ERROR, Outcome.UNCLASSIFIED}


def test_builtin_spool_queue_is_registered(settings):
    assert "spool" in available_queues()
    assert isinstance(get_queue_handle("spool", settings), SpoolQueue)


def test_unknown_queue_is_a_configuration_error(settings):
    with pytest.raises(ConfigurationError, match="Unknown queue 'nope'.*spool"):
        get_queue_handle("nope", settings)


def test_register_queue_rejects_duplicates(monkeypatch):
    monkeypatch.setattr(queues, "QUEUE_REGISTRY", {})

    @register_queue("scripted")
    def build(settings):
        return ScriptedHandle([])

    assert available_queues() == ["scripted"]
    with pytest.raises(ValueError, match="already registered"):
        register_queue("scripted")(build)
