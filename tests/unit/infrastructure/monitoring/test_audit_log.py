import logging
import re
from pathlib import Path

from objcache.infrastructure.monitoring.audit_log import AuditLog, AuditTag
from objcache.infrastructure.monitoring.logger_setup import resolve_log_level, setup_logging

LINE_PATTERN = re.compile(r'^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} UTC\] set: "g:k" "abc-def"$')


def _lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


def test_disabled_log_never_creates_file(audit_file: Path):
    log = AuditLog(enabled=False, log_file=audit_file)
    log.record(AuditTag.SET, "g:k", "abc-def")
    log.close()
    assert not audit_file.exists()


def test_enabled_without_file_is_disabled():
    assert not AuditLog(enabled=True, log_file=None).enabled


def test_nothing_opened_before_first_record(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file)
    assert not audit_file.exists()
    log.close()


def test_line_format(audit: AuditLog, audit_file: Path):
    audit.record(AuditTag.SET, "g:k", "abc-def")
    assert LINE_PATTERN.match(_lines(audit_file)[0])


def test_context_is_appended(audit: AuditLog, audit_file: Path):
    audit.bind_context("cli set")
    audit.record("set", "g:k", "abc-def")
    assert _lines(audit_file)[0].endswith('"abc-def" "cli set"')


def test_context_provider_wins_over_bound_context(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file, context_provider=lambda: "request 42")
    log.bind_context("ignored")
    log.record(AuditTag.HIT, "g:k", "x")
    log.close()
    assert _lines(audit_file)[0].endswith('"request 42"')


def test_duplicate_lines_are_suppressed(audit: AuditLog, audit_file: Path):
    for _ in range(3):
        audit.record(AuditTag.HIT, "g:k", "abc-def")
    audit.record(AuditTag.HIT, "g:other", "abc-123")
    assert len(_lines(audit_file)) == 2


def test_flush_truncates_when_configured(audit: AuditLog, audit_file: Path):
    audit.record(AuditTag.SET, "g:a", "1")
    audit.record(AuditTag.SET, "g:b", "2")
    audit.record(AuditTag.FLUSH, "OK", 2)
    lines = _lines(audit_file)
    assert len(lines) == 1
    assert 'flush: "OK" "2"' in lines[0]


def test_flush_appends_when_truncation_disabled(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file, truncate_on_flush=False)
    log.record(AuditTag.SET, "g:a", "1")
    log.record(AuditTag.FLUSH, "OK", 1)
    log.close()
    assert len(_lines(audit_file)) == 2


def test_oversized_file_is_truncated(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file, max_bytes=200)
    for i in range(10):
        log.record(AuditTag.SET, f"g:key-{i}", f"payload-{i}")
    log.close()
    assert audit_file.stat().st_size < 400
    assert "key-9" in audit_file.read_text(encoding="utf-8")
    assert "key-0" not in audit_file.read_text(encoding="utf-8")


def test_existing_file_is_appended_to(audit_file: Path):
    audit_file.parent.mkdir(parents=True)
    audit_file.write_text("earlier line\n", encoding="utf-8")
    log = AuditLog(enabled=True, log_file=audit_file)
    log.record(AuditTag.DELETE, "g:k", "abc")
    log.close()
    assert _lines(audit_file)[0] == "earlier line"
    assert len(_lines(audit_file)) == 2


def test_record_after_close_is_ignored(audit_file: Path):
    log = AuditLog(enabled=True, log_file=audit_file)
    log.close()
    log.record(AuditTag.SET, "g:k", "x")
    assert not audit_file.exists()


def test_audit_lines_stay_out_of_root_logger(audit: AuditLog, caplog):
    with caplog.at_level(logging.DEBUG):
        audit.record(AuditTag.SET, "g:k", "abc-def")
    assert not [r for r in caplog.records if r.name == "objcache.audit"]


# --- Application logging ---

def test_resolve_log_level():
    assert resolve_log_level("debug") == logging.DEBUG
    assert resolve_log_level(logging.ERROR) == logging.ERROR
    assert resolve_log_level("nonsense") == logging.WARNING


def test_setup_logging_writes_to_file(tmp_path: Path):
    log_file = tmp_path / "app.log"
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(log_level="INFO", log_file=log_file)
        logging.getLogger("objcache.test").info("hello from test")
        for handler in root.handlers:
            handler.flush()
        assert "hello from test" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_replaces_only_its_own_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    foreign = logging.NullHandler()
    root.addHandler(foreign)
    try:
        setup_logging(log_level="DEBUG")
        setup_logging(log_level="ERROR")
        added = [h for h in root.handlers if h not in saved_handlers and h is not foreign]
        assert len(added) == 1
        assert added[0].level == logging.ERROR
        assert foreign in root.handlers
        assert root.level == logging.ERROR
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_setup_logging_survives_unwritable_log_file(tmp_path: Path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(log_file=tmp_path / "missing-dir" / "app.log")
        added = [h for h in root.handlers if h not in saved_handlers]
        assert len(added) == 1
        assert isinstance(added[0], logging.StreamHandler)
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
