import logging

from scrapwatch.core.utils.logging_filters import REDACTED, SecretRedactingFilter, configure_logging


def _record(msg, args):
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )


def test_secret_redacting_filter_redacts_message_and_args():
    filt = SecretRedactingFilter(["https://discord.com/api/webhooks/1/abc", "hunter2"])
    record = _record(
        "posting to https://discord.com/api/webhooks/1/abc",
        ("hunter2", {"nested": ["hunter2"]}),
    )

    ok = filt.filter(record)

    assert ok is True
    assert "webhooks/1/abc" not in str(record.msg)
    assert "hunter2" not in str(record.args)
    assert REDACTED in record.getMessage()


def test_exception_args_are_redacted():
    filt = SecretRedactingFilter(["hunter2"])
    record = _record("failed: %s", (ValueError("bad password hunter2"),))

    filt.filter(record)

    assert record.getMessage() == f"failed: bad password {REDACTED}"


def test_longer_secret_masked_first():
    filt = SecretRedactingFilter(["abc", "abcdef"])
    record = _record("token abcdef", ())

    filt.filter(record)

    assert record.msg == f"token {REDACTED}"


def test_empty_secrets_are_ignored():
    filt = SecretRedactingFilter(["", ""])
    record = _record("nothing to hide", ())

    assert filt.filter(record) is True
    assert record.msg == "nothing to hide"


def test_configure_logging_installs_filter_on_root_handlers():
    root = logging.getLogger()
    handler = logging.StreamHandler()
    root.addHandler(handler)
    try:
        configure_logging("warning", ["s3cret"])
        assert any(isinstance(f, SecretRedactingFilter) for f in handler.filters)
        assert root.level == logging.WARNING
    finally:
        root.removeHandler(handler)
        root.setLevel(logging.WARNING)
