"""
stepforge Intermediate Representation (IR) types.

Types are organized into submodules (locators, primitives, journey) and
re-exported here.
"""

from .base import IRModel
from .journey import (
    Accessibility,
    AccessibilityTiming,
    CleanupStrategy,
    CompletionOptions,
    CompletionSignal,
    CompletionType,
    DataStrategy,
    ElementState,
    IRJourney,
    IRStep,
    JourneyDataConfig,
    JourneyTier,
    ModuleDependencies,
    NegativePath,
    Performance,
    PerformanceBudgets,
    TestDataSet,
    VisualRegression,
)
from .locators import LocatorOptions, LocatorSpec, LocatorStrategy, ValueSpec, ValueType
from .primitives import (
    PRIMITIVE_ADAPTER,
    AcceptAlert,
    Blocked,
    CallModule,
    Check,
    Clear,
    Click,
    DblClick,
    DismissAlert,
    DismissModal,
    ExpectChecked,
    ExpectCount,
    ExpectDisabled,
    ExpectEnabled,
    ExpectHidden,
    ExpectText,
    ExpectTitle,
    ExpectToast,
    ExpectURL,
    ExpectValue,
    ExpectVisible,
    Fill,
    Focus,
    GoBack,
    GoForward,
    Goto,
    Hover,
    IRPrimitive,
    Press,
    Reload,
    RightClick,
    Select,
    ToastType,
    Uncheck,
    Upload,
    WaitForHidden,
    WaitForLoadingComplete,
    WaitForNetworkIdle,
    WaitForResponse,
    WaitForTimeout,
    WaitForURL,
    WaitForVisible,
    is_assertion,
    parse_primitive,
)

__all__ = [
    "IRModel",
    # Locators
    "LocatorStrategy",
    "LocatorOptions",
    "LocatorSpec",
    "ValueType",
    "ValueSpec",
    # Primitives
    "IRPrimitive",
    "PRIMITIVE_ADAPTER",
    "parse_primitive",
    "is_assertion",
    "ToastType",
    "Goto",
    "Reload",
    "GoBack",
    "GoForward",
    "WaitForURL",
    "Click",
    "DblClick",
    "RightClick",
    "Fill",
    "Select",
    "Check",
    "Uncheck",
    "Press",
    "Hover",
    "Focus",
    "Clear",
    "Upload",
    "ExpectVisible",
    "ExpectHidden",
    "ExpectText",
    "ExpectValue",
    "ExpectChecked",
    "ExpectEnabled",
    "ExpectDisabled",
    "ExpectURL",
    "ExpectTitle",
    "ExpectCount",
    "ExpectToast",
    "WaitForVisible",
    "WaitForHidden",
    "WaitForTimeout",
    "WaitForNetworkIdle",
    "WaitForLoadingComplete",
    "WaitForResponse",
    "DismissModal",
    "AcceptAlert",
    "DismissAlert",
    "CallModule",
    "Blocked",
    # Journey
    "JourneyTier",
    "DataStrategy",
    "CleanupStrategy",
    "CompletionType",
    "ElementState",
    "CompletionOptions",
    "CompletionSignal",
    "JourneyDataConfig",
    "ModuleDependencies",
    "NegativePath",
    "TestDataSet",
    "VisualRegression",
    "AccessibilityTiming",
    "Accessibility",
    "PerformanceBudgets",
    "Performance",
    "IRStep",
    "IRJourney",
]
