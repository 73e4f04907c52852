import threading

import pytest

from phyloflow.config import WorkflowConfig
from phyloflow.exceptions import CanceledError
from phyloflow.progress import ProgressListener, ProgressSilent


def test_config_defaults():
    config = WorkflowConfig()
    assert config.max_workers == 4
    assert config.show_progress
    assert config.log_level == "INFO"


def test_config_validates():
    with pytest.raises(ValueError):
        WorkflowConfig(max_workers=0)
    with pytest.raises(ValueError):
        WorkflowConfig(progress_step=0)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("PHYLOFLOW_MAX_WORKERS", "8")
    monkeypatch.setenv("PHYLOFLOW_SHOW_PROGRESS", "no")
    monkeypatch.setenv("PHYLOFLOW_PROGRESS_STEP", "25")
    monkeypatch.setenv("PHYLOFLOW_LOG_LEVEL", "debug")

    config = WorkflowConfig.from_env(load_dotenv=False)

    assert config == WorkflowConfig(
        max_workers=8, show_progress=False, progress_step=25, log_level="DEBUG"
    )


def test_progress_is_monotonic():
    progress = ProgressSilent()
    progress.set_maximum(10)
    progress.set_progress(5)
    progress.set_progress(3)
    progress.increment_progress()
    assert progress.progress == 6
    assert progress.maximum == 10


def test_set_maximum_resets_counter():
    progress = ProgressSilent()
    progress.set_maximum(3)
    progress.increment_progress()
    progress.set_maximum(7)
    assert progress.progress == 0


def test_cancel_raises_on_next_check():
    progress = ProgressSilent()
    progress.set_maximum(10)
    progress.increment_progress()
    progress.cancel()
    assert progress.is_canceled
    with pytest.raises(CanceledError):
        progress.increment_progress()


def test_cancel_checked_at_interval():
    event = threading.Event()
    progress = ProgressListener(cancel_event=event, show_progress=False, check_interval=3)
    progress.set_maximum(10)
    event.set()
    progress.increment_progress()
    progress.increment_progress()
    with pytest.raises(CanceledError):
        progress.increment_progress()


def test_listener_as_context_manager():
    with ProgressListener("task", show_progress=False) as progress:
        progress.set_tasks("task", "step one")
        progress.set_maximum(2)
        progress.increment_progress()
    assert progress.subtask == "step one"
