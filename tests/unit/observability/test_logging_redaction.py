import logging

import pytest

from src.observability.logging import SecretRedactionFilter, redact_secrets
from src.observability.metrics import PLAY_HISTORY_WRITES, record_play_history


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw,leaked",
    [
        ("Authorization: Bearer abc.DEF-123", "abc.DEF-123"),
        ("Authorization: Basic Y2lkOnNlY3JldA==", "Y2lkOnNlY3JldA=="),
        ("grant_type=refresh_token&refresh_token=r-123&x=1", "r-123"),
        ("{'access_token': 'tok-9', 'expires_in': 3600}", "tok-9"),
    ],
)
def test_redact_secrets_masks_tokens(raw, leaked):
    redacted = redact_secrets(raw)
    assert leaked not in redacted
    assert "[redacted]" in redacted


@pytest.mark.unit
def test_redaction_filter_rewrites_formatted_message():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "token %s", ("Bearer secret-value",), None)
    assert SecretRedactionFilter().filter(record) is True
    assert "secret-value" not in record.getMessage()


@pytest.mark.unit
def test_play_history_metric_labels():
    before = PLAY_HISTORY_WRITES.labels(result="deduplicated")._value.get()
    record_play_history(False)
    assert PLAY_HISTORY_WRITES.labels(result="deduplicated")._value.get() == before + 1
