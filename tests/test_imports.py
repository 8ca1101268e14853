"""
Test that the public package surface imports cleanly.
"""


def test_core_imports():
    """Test top-level imports"""
    from stackbuddy import (
        StackBuddy,
        MessageEnvelope,
        StreamCallbacks,
        DelayedResponse,
        FormsAgent,
        CompletionMonitor,
        ToolCatalog,
    )

    assert StackBuddy is not None
    assert MessageEnvelope is not None
    assert StreamCallbacks is not None
    assert DelayedResponse is not None
    assert FormsAgent is not None
    assert CompletionMonitor is not None
    assert ToolCatalog is not None


def test_all_names_resolve():
    """Every name in __all__ is importable"""
    import stackbuddy

    missing = [name for name in stackbuddy.__all__ if not hasattr(stackbuddy, name)]
    assert missing == []


def test_forms_imports():
    """Test forms tool imports"""
    from stackbuddy.forms import FormsApiClient, FormsApiConfig, FormsService, build_forms_catalog

    assert FormsApiClient is not None
    assert FormsApiConfig is not None
    assert FormsService is not None
    assert build_forms_catalog is not None


def test_error_hierarchy():
    """Every library error derives from StackBuddyError"""
    from stackbuddy import (
        ConfigError,
        FormsApiError,
        MonitorInternalError,
        StackBuddyError,
        StashError,
        StreamError,
        ToolInvocationError,
        UnknownToolError,
    )

    for error in (ConfigError, FormsApiError, MonitorInternalError, StashError,
                  StreamError, ToolInvocationError, UnknownToolError):
        assert issubclass(error, StackBuddyError)


def test_version():
    import stackbuddy

    assert stackbuddy.__version__ == "0.1.0"
