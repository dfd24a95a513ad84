"""
Remote messaging: decide which server-configured message to show.

Example:
    >>> config = load_remote_config(payload, survey_mapper=DefaultSurveyURLBuilder(atb="v456-7"))
    >>> matcher = RemoteMessagingConfigMatcher(
    ...     app_matcher=AppAttributeMatcher(bundle_id="com.duckduckgo.ios", app_version="7.1"),
    ...     device_matcher=DeviceAttributeMatcher(os_version="17.1", locale="en_US"),
    ...     user_matcher=UserAttributeMatcher(bookmarks_count=12),
    ...     percentile_store=InMemoryPercentileStore(),
    ...     dismissed_message_ids=["already-seen"],
    ... )
    >>> message = matcher.evaluate(config)
"""

from .attributes import (
    ATTRIBUTE_TYPES,
    MatchingAttribute,
    UnknownMatchingAttribute,
    compare_versions,
    parse_attribute,
    parse_version,
)
from .mapper import load_remote_config, map_remote_config
from .matcher import RemoteMessagingConfigMatcher
from .matchers import (
    AppAttributeMatcher,
    DeviceAttributeMatcher,
    UserAttributeMatcher,
    normalize_locale,
)
from .models import (
    AppStoreAction,
    BigSingleActionContent,
    BigTwoActionContent,
    ContentTranslation,
    DismissAction,
    EvaluationResult,
    MediumContent,
    PromoSingleActionContent,
    RemoteConfigModel,
    RemoteConfigRule,
    RemoteMessageModel,
    RemotePlaceholder,
    ShareAction,
    SmallContent,
    SurveyAction,
    TargetPercentile,
    UrlAction,
)
from .percentile_store import InMemoryPercentileStore, PercentileStore
from .survey import (
    DefaultSurveyURLBuilder,
    SubscriptionPlatform,
    SubscriptionStatus,
    SurveyActionMapper,
    SurveyActionParameter,
)

__all__ = [
    # Selection
    "RemoteMessagingConfigMatcher",
    "AppAttributeMatcher",
    "DeviceAttributeMatcher",
    "UserAttributeMatcher",
    "PercentileStore",
    "InMemoryPercentileStore",
    "EvaluationResult",
    # Mapping
    "load_remote_config",
    "map_remote_config",
    "ATTRIBUTE_TYPES",
    "MatchingAttribute",
    "UnknownMatchingAttribute",
    "parse_attribute",
    "parse_version",
    "compare_versions",
    "normalize_locale",
    # Model
    "RemoteConfigModel",
    "RemoteConfigRule",
    "RemoteMessageModel",
    "RemotePlaceholder",
    "TargetPercentile",
    "ContentTranslation",
    "SmallContent",
    "MediumContent",
    "BigSingleActionContent",
    "BigTwoActionContent",
    "PromoSingleActionContent",
    "ShareAction",
    "UrlAction",
    "SurveyAction",
    "AppStoreAction",
    "DismissAction",
    # Surveys
    "SurveyActionMapper",
    "SurveyActionParameter",
    "DefaultSurveyURLBuilder",
    "SubscriptionStatus",
    "SubscriptionPlatform",
]
