"""
Mapping of a remote messaging JSON document to RemoteConfigModel.

The document is trusted to be JSON but not to be well-formed: messages
with unknown types, missing text or unresolvable actions are dropped,
and unknown rule attributes become UnknownMatchingAttribute. Nothing in
a document makes mapping fail, apart from input that is not JSON at all.

Example:
    >>> config = map_remote_config(json.loads(payload), locale="de_DE")
    >>> [message.id for message in config.messages]
    ['8274589c-8aeb-4322-a737-3852911569e3']
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .attributes import parse_attribute
from .matchers import normalize_locale
from .models import (
    AppStoreAction,
    BigSingleActionContent,
    BigTwoActionContent,
    ContentTranslation,
    DismissAction,
    MediumContent,
    PromoSingleActionContent,
    RemoteAction,
    RemoteConfigModel,
    RemoteConfigRule,
    RemoteMessageContent,
    RemoteMessageModel,
    RemotePlaceholder,
    ShareAction,
    SmallContent,
    SurveyAction,
    TargetPercentile,
    UrlAction,
)
from .survey import SurveyActionMapper, parse_survey_parameters

_logger = logging.getLogger(__name__)

_PLACEHOLDERS = {
    "announce": RemotePlaceholder.ANNOUNCE,
    "ddgannounce": RemotePlaceholder.DDG_ANNOUNCE,
    "criticalupdate": RemotePlaceholder.CRITICAL_UPDATE,
    "appupdate": RemotePlaceholder.APP_UPDATE,
    "maccomputer": RemotePlaceholder.MAC_COMPUTER,
    "newformacandwindows": RemotePlaceholder.NEW_FOR_MAC_AND_WINDOWS,
    "privacyshield": RemotePlaceholder.PRIVACY_SHIELD,
}


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _int_list(value: Any) -> tuple[int, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, int) and not isinstance(item, bool))


def map_placeholder(raw: Any) -> RemotePlaceholder:
    """Placeholder names are matched case-insensitively; unknown -> ANNOUNCE."""
    if not isinstance(raw, str):
        return RemotePlaceholder.ANNOUNCE
    return _PLACEHOLDERS.get(raw.lower(), RemotePlaceholder.ANNOUNCE)


def map_action(raw: Any, survey_mapper: SurveyActionMapper | None = None) -> RemoteAction | None:
    """Map a JSON action, or return None if it cannot be used."""
    if not isinstance(raw, dict):
        return None
    action_type = raw.get("type")
    value = _text(raw, "value")
    parameters = raw.get("additionalParameters")
    if not isinstance(parameters, dict):
        parameters = {}

    if not isinstance(action_type, str):
        return None
    action_type = action_type.lower()

    if action_type == "share":
        title = parameters.get("title")
        return ShareAction(value=value, title=title if isinstance(title, str) else None)
    if action_type == "url":
        return UrlAction(value=value)
    if action_type == "survey":
        query_params = parameters.get("queryParams")
        if not isinstance(query_params, str):
            return SurveyAction(value=value)
        requested = parse_survey_parameters(query_params)
        if requested is None or survey_mapper is None:
            _logger.debug("Survey action requests unsupported parameters: %s", query_params)
            return None
        return SurveyAction(value=survey_mapper.add_parameters(value, requested))
    if action_type == "appstore":
        return AppStoreAction()
    if action_type == "dismiss":
        return DismissAction()
    return None


def map_content(
    raw: Any, survey_mapper: SurveyActionMapper | None = None
) -> RemoteMessageContent | None:
    """Map the ``content`` object of a message, or None if it is unusable."""
    if not isinstance(raw, dict):
        return None
    message_type = raw.get("messageType")
    title = _text(raw, "titleText")
    description = _text(raw, "descriptionText")
    placeholder = map_placeholder(raw.get("placeholder"))

    # every variant shows both texts
    if not title or not description:
        return None

    if message_type == "small":
        return SmallContent(title_text=title, description_text=description)

    if message_type == "medium":
        return MediumContent(
            title_text=title, description_text=description, placeholder=placeholder
        )

    if message_type == "big_single_action":
        primary_text = _text(raw, "primaryActionText")
        primary = map_action(raw.get("primaryAction"), survey_mapper)
        if not primary_text or primary is None:
            return None
        return BigSingleActionContent(
            title_text=title,
            description_text=description,
            placeholder=placeholder,
            primary_action_text=primary_text,
            primary_action=primary,
        )

    if message_type == "big_two_action":
        primary_text = _text(raw, "primaryActionText")
        primary = map_action(raw.get("primaryAction"), survey_mapper)
        secondary_text = _text(raw, "secondaryActionText")
        secondary = map_action(raw.get("secondaryAction"), survey_mapper)
        if not primary_text or primary is None or not secondary_text or secondary is None:
            return None
        return BigTwoActionContent(
            title_text=title,
            description_text=description,
            placeholder=placeholder,
            primary_action_text=primary_text,
            primary_action=primary,
            secondary_action_text=secondary_text,
            secondary_action=secondary,
        )

    if message_type == "promo_single_action":
        action_text = _text(raw, "actionText")
        action = map_action(raw.get("action"), survey_mapper)
        if not action_text or action is None:
            return None
        return PromoSingleActionContent(
            title_text=title,
            description_text=description,
            placeholder=placeholder,
            action_text=action_text,
            action=action,
        )

    return None


def map_translation(translations: Any, locale: str | None) -> ContentTranslation | None:
    """Pick the translation for ``locale`` (``en_US`` and ``en-US`` both work)."""
    if locale is None or not isinstance(translations, dict):
        return None
    raw = translations.get(normalize_locale(locale))
    if not isinstance(raw, dict):
        return None
    return ContentTranslation(
        title_text=_text(raw, "titleText") or None,
        description_text=_text(raw, "descriptionText") or None,
        primary_action_text=_text(raw, "primaryActionText") or None,
        secondary_action_text=_text(raw, "secondaryActionText") or None,
    )


def map_messages(
    raw_messages: Any,
    survey_mapper: SurveyActionMapper | None = None,
    locale: str | None = None,
) -> list[RemoteMessageModel]:
    """Map messages in document order, dropping the unusable ones."""
    if not isinstance(raw_messages, list):
        return []

    messages: list[RemoteMessageModel] = []
    for raw in raw_messages:
        if not isinstance(raw, dict) or not isinstance(raw.get("id"), str):
            _logger.debug("Dropping message without an id")
            continue
        content = map_content(raw.get("content"), survey_mapper)
        if content is None:
            _logger.debug("Dropping message %s: unusable content", raw["id"])
            continue

        metrics = raw.get("isMetricsEnabled")
        message = RemoteMessageModel(
            id=raw["id"],
            content=content,
            matching_rules=_int_list(raw.get("matchingRules")),
            exclusion_rules=_int_list(raw.get("exclusionRules")),
            is_metrics_enabled=metrics if isinstance(metrics, bool) else True,
        )
        translation = map_translation(raw.get("translations"), locale)
        if translation is not None:
            message = message.localized(translation)
        messages.append(message)
    return messages


def map_rules(raw_rules: Any) -> list[RemoteConfigRule]:
    """Map rules, keeping attribute order as written in the document."""
    if not isinstance(raw_rules, list):
        return []

    rules: list[RemoteConfigRule] = []
    for raw in raw_rules:
        if not isinstance(raw, dict):
            continue
        rule_id = raw.get("id")
        if not isinstance(rule_id, int) or isinstance(rule_id, bool):
            _logger.debug("Dropping rule without an integer id")
            continue

        target_percentile = None
        raw_percentile = raw.get("targetPercentile")
        if isinstance(raw_percentile, dict):
            before = raw_percentile.get("before")
            valid = isinstance(before, (int, float)) and not isinstance(before, bool)
            target_percentile = TargetPercentile(before=float(before) if valid else None)

        raw_attributes = raw.get("attributes")
        if not isinstance(raw_attributes, dict):
            raw_attributes = {}
        attributes = tuple(parse_attribute(key, value) for key, value in raw_attributes.items())

        rules.append(
            RemoteConfigRule(id=rule_id, attributes=attributes, target_percentile=target_percentile)
        )
    return rules


def map_remote_config(
    document: dict[str, Any],
    survey_mapper: SurveyActionMapper | None = None,
    locale: str | None = None,
) -> RemoteConfigModel:
    """Map a decoded remote messaging document.

    Args:
        document: Decoded JSON object
        survey_mapper: Builds survey URLs; without one, surveys that
            request query parameters are dropped
        locale: Locale whose translations to apply, if any
    """
    version = document.get("version")
    if not isinstance(version, int) or isinstance(version, bool):
        version = 0
    config = RemoteConfigModel(
        version=version,
        messages=tuple(map_messages(document.get("messages"), survey_mapper, locale)),
        rules=tuple(map_rules(document.get("rules"))),
    )
    _logger.debug(
        "Mapped remote config v%s: %d messages, %d rules",
        config.version,
        len(config.messages),
        len(config.rules),
    )
    return config


def load_remote_config(
    payload: str | bytes,
    survey_mapper: SurveyActionMapper | None = None,
    locale: str | None = None,
) -> RemoteConfigModel:
    """Decode and map a remote messaging document.

    Raises:
        ValueError: If the payload is not a JSON object
    """
    document = json.loads(payload)
    if not isinstance(document, dict):
        raise ValueError("Remote messaging config must be a JSON object")
    return map_remote_config(document, survey_mapper, locale)
