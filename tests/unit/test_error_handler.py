from src.domain.errors import (
    ConversionError,
    ErrorHandler,
    NotFoundError,
    PersistenceError,
    StorefrontError,
    ValidationError,
)


def test_known_code_uses_error_text_for_domain_errors():
    err = ValidationError("big.jpg is too large (max 10MB)", code="file-too-large")
    report = ErrorHandler.handle(err, "intake")
    assert report.message == "big.jpg is too large (max 10MB)"
    assert report.recovery == "Please use an image smaller than 10MB."
    assert report.context == "intake"
    assert report.user_message == "big.jpg is too large (max 10MB). Please use an image smaller than 10MB."


def test_known_code_on_persistence_error_uses_catalog_message():
    report = ErrorHandler.handle(PersistenceError("rls said no", code="permission-denied"))
    assert report.message == "Permission denied"
    assert report.technical == "rls said no"


def test_keyword_match_on_technical_text():
    assert ErrorHandler.handle(Exception("Network request failed")).message == "Network connection lost"
    assert ErrorHandler.handle(PersistenceError("upstream unavailable")).message == (
        "Service temporarily unavailable"
    )
    assert ErrorHandler.handle("operation timeout after 30s").message == "Request timed out"


def test_unknown_error_falls_back():
    report = ErrorHandler.handle(RuntimeError("kaboom"))
    assert report.message == "Something went wrong"
    assert report.technical == "kaboom"


def test_empty_message_uses_type_name():
    assert ErrorHandler.handle(KeyError()).technical == "KeyError"


def test_error_codes_and_hierarchy():
    assert ValidationError("x").code == "validation"
    assert ConversionError("x").code == "conversion"
    assert ConversionError("x", code="heic-conversion").code == "heic-conversion"
    assert NotFoundError("x").code == "not-found"
    assert isinstance(NotFoundError("x"), ValidationError)
    assert isinstance(PersistenceError("x"), StorefrontError)
    assert ErrorHandler.handle(NotFoundError("Listing not found")).message == "Listing not found"
