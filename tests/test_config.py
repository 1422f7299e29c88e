from formbuilder.config import Settings


def test_boolean_flags_are_read_from_the_environment(monkeypatch):
    monkeypatch.setenv("DB_ECHO", "yes")
    monkeypatch.setenv("DB_CREATE_TABLES", "1")
    monkeypatch.setenv("EXPOSE_ERROR_DETAILS", "false")

    configured = Settings()

    assert configured.DB_ECHO is True
    assert configured.DB_CREATE_TABLES is True
    assert configured.EXPOSE_ERROR_DETAILS is False


def test_boolean_flag_defaults(monkeypatch):
    for name in ("DB_ECHO", "DB_CREATE_TABLES", "EXPOSE_ERROR_DETAILS"):
        monkeypatch.delenv(name, raising=False)

    configured = Settings()

    assert configured.DB_ECHO is False
    assert configured.DB_CREATE_TABLES is False
    assert configured.EXPOSE_ERROR_DETAILS is True
