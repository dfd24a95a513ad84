import datetime

import pytest

from services_kit.remote_messaging import (
    AppAttributeMatcher,
    DeviceAttributeMatcher,
    EvaluationResult,
    InMemoryPercentileStore,
    RemoteConfigModel,
    RemoteConfigRule,
    RemoteMessageModel,
    RemoteMessagingConfigMatcher,
    SmallContent,
    TargetPercentile,
    UserAttributeMatcher,
    parse_attribute,
)


def message(message_id, matching=(), exclusion=()):
    return RemoteMessageModel(
        id=message_id,
        content=SmallContent(title_text="Title", description_text="Description"),
        matching_rules=tuple(matching),
        exclusion_rules=tuple(exclusion),
    )


def rule(rule_id, before=None, **attributes):
    return RemoteConfigRule(
        id=rule_id,
        attributes=tuple(parse_attribute(key, value) for key, value in attributes.items()),
        target_percentile=TargetPercentile(before=before) if before is not None else None,
    )


IOS_APP = AppAttributeMatcher(bundle_id="com.duckduckgo.mobile.ios", app_version="7.100.1")


def build_matcher(percentiles=None, dismissed=(), app=None, device=None, user=None):
    return RemoteMessagingConfigMatcher(
        app_matcher=app or IOS_APP,
        device_matcher=device or DeviceAttributeMatcher(os_version="17.1", locale="en_US"),
        user_matcher=user or UserAttributeMatcher(),
        percentile_store=InMemoryPercentileStore(percentiles, random_source=lambda: 0.5),
        dismissed_message_ids=dismissed,
    )


@pytest.mark.unit
class TestMessageSelection:
    def test_message_without_rules_is_selected(self):
        config = RemoteConfigModel(version=1, messages=(message("a"),))
        assert build_matcher().evaluate(config).id == "a"

    def test_empty_config_selects_nothing(self):
        assert build_matcher().evaluate(RemoteConfigModel(version=1)) is None

    def test_first_eligible_message_wins(self):
        config = RemoteConfigModel(
            version=1,
            messages=(
                message("a", matching=[1]),
                message("b", matching=[2]),
                message("c", matching=[2]),
            ),
            rules=(rule(1, osApi={"min": "18"}), rule(2, osApi={"min": "17"})),
        )
        assert build_matcher().evaluate(config).id == "b"

    def test_dismissed_message_is_skipped(self):
        config = RemoteConfigModel(version=1, messages=(message("a"), message("b")))
        assert build_matcher(dismissed=["a"]).evaluate(config).id == "b"

    def test_unknown_rule_skips_message(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[99]), message("b", matching=[1])),
            rules=(rule(1, locale={"value": ["en-US"]}),),
        )
        assert build_matcher().evaluate(config).id == "b"

    def test_exclusion_rule_blocks_message(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[1], exclusion=[2]), message("b")),
            rules=(rule(1, osApi={"min": "17"}), rule(2, locale={"value": ["en-US"]})),
        )
        assert build_matcher().evaluate(config).id == "b"

    def test_exclusion_rule_that_fails_allows_message(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", exclusion=[2]),),
            rules=(rule(2, locale={"value": ["de-DE"]}),),
        )
        assert build_matcher().evaluate(config).id == "a"

    def test_first_definition_of_a_rule_id_wins(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[1]),),
            rules=(rule(1, osApi={"min": "17"}), rule(1, osApi={"min": "99"})),
        )
        assert build_matcher().evaluate(config).id == "a"


@pytest.mark.unit
class TestRuleEvaluation:
    def test_any_matching_rule_is_enough(self):
        config = RemoteConfigModel(
            version=1,
            rules=(rule(1, osApi={"min": "18"}), rule(2, osApi={"min": "17"})),
        )
        result = build_matcher().evaluate_matching_rules([1, 2], "a", config)
        assert result is EvaluationResult.MATCH

    def test_all_attributes_of_a_rule_must_match(self):
        config = RemoteConfigModel(
            version=1,
            rules=(rule(1, osApi={"min": "17"}, locale={"value": ["de-DE"]}),),
        )
        result = build_matcher().evaluate_matching_rules([1], "a", config)
        assert result is EvaluationResult.FAIL

    def test_empty_lists(self):
        config = RemoteConfigModel(version=1)
        matcher = build_matcher()

        assert matcher.evaluate_matching_rules([], "a", config) is EvaluationResult.MATCH
        assert matcher.evaluate_exclusion_rules([], "a", config) is EvaluationResult.FAIL

    def test_rule_without_attributes_excludes_nothing(self):
        config = RemoteConfigModel(version=1, rules=(rule(1),))
        assert build_matcher().evaluate_exclusion_rules([1], "a", config) is EvaluationResult.FAIL

    def test_unknown_attribute_uses_fallback(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[1]), message("b", matching=[2])),
            rules=(
                rule(1, futureAttribute={"value": 3}),
                rule(2, futureAttribute={"value": 3, "fallback": True}),
            ),
        )
        assert build_matcher().evaluate(config).id == "b"


@pytest.mark.unit
class TestPercentileGate:
    def config(self, before):
        return RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[1]),),
            rules=(rule(1, before=before, osApi={"min": "17"}),),
        )

    def test_user_inside_rollout(self):
        assert build_matcher({"a": 0.2}).evaluate(self.config(0.3)).id == "a"

    def test_user_at_boundary_is_inside(self):
        assert build_matcher({"a": 0.3}).evaluate(self.config(0.3)).id == "a"

    def test_user_outside_rollout(self):
        assert build_matcher({"a": 0.8}).evaluate(self.config(0.3)) is None

    def test_percentile_is_drawn_once_per_message(self):
        store = InMemoryPercentileStore(random_source=iter([0.9, 0.1]).__next__)
        matcher = RemoteMessagingConfigMatcher(
            app_matcher=AppAttributeMatcher(bundle_id="id", app_version="1.0"),
            device_matcher=DeviceAttributeMatcher(os_version="17.1", locale="en_US"),
            user_matcher=UserAttributeMatcher(),
            percentile_store=store,
        )

        assert matcher.evaluate(self.config(0.5)) is None
        assert matcher.evaluate(self.config(0.5)) is None
        assert store.snapshot() == {"a": 0.9}


@pytest.mark.unit
class TestAttributeGroups:
    def test_app_attributes(self):
        matcher = build_matcher(
            app=AppAttributeMatcher(
                bundle_id="com.duckduckgo.mobile.ios",
                app_version="7.100.1",
                is_internal_user=True,
                atb="v456-7",
            )
        )
        for key, value, expected in [
            ("appId", {"value": "com.duckduckgo.mobile.ios"}, EvaluationResult.MATCH),
            ("appVersion", {"min": "7.99", "max": "7.100.1"}, EvaluationResult.MATCH),
            ("isInternalUser", {"value": False}, EvaluationResult.FAIL),
            ("atb", {"value": "v456-7"}, EvaluationResult.MATCH),
            ("expVariant", {"value": "zo"}, EvaluationResult.FAIL),
        ]:
            assert matcher.evaluate_attribute(parse_attribute(key, value)) is expected, key

    def test_device_locale_is_normalized(self):
        device = DeviceAttributeMatcher(os_version="14", locale="pt_BR@rg=ptzzzz")
        matcher = build_matcher(device=device)

        locale = parse_attribute("locale", {"value": ["pt_BR"]})
        os_version = parse_attribute("osApi", {"value": "14.0"})
        assert matcher.evaluate_attribute(locale) is EvaluationResult.MATCH
        assert matcher.evaluate_attribute(os_version) is EvaluationResult.MATCH

    def test_user_attributes(self):
        user = UserAttributeMatcher(
            bookmarks_count=12,
            install_date=datetime.date(2024, 1, 1),
            today=datetime.date(2024, 1, 15),
            is_privacy_pro_subscription_expiring=True,
            dismissed_message_ids=frozenset({"old"}),
            privacy_pro_purchase_platform="apple",
        )
        matcher = build_matcher(user=user)

        for key, value, expected in [
            ("bookmarks", {"min": 10, "max": 20}, EvaluationResult.MATCH),
            ("daysSinceInstalled", {"max": 7}, EvaluationResult.FAIL),
            ("daysSinceInstalled", {"value": 14}, EvaluationResult.MATCH),
            ("pproSubscriptionStatus", {"value": ["expiring"]}, EvaluationResult.MATCH),
            ("interactedWithMessage", {"value": ["old", "new"]}, EvaluationResult.MATCH),
            ("messageShown", {"value": ["old"]}, EvaluationResult.FAIL),
            ("pproPurchasePlatform", {"value": ["apple", "stripe"]}, EvaluationResult.MATCH),
        ]:
            assert matcher.evaluate_attribute(parse_attribute(key, value)) is expected, key

    def test_unknown_install_date_fails(self):
        matcher = build_matcher()
        attribute = parse_attribute("daysSinceInstalled", {"min": 0})
        assert matcher.evaluate_attribute(attribute) is EvaluationResult.FAIL

    def test_app_store_install_unknown_skips_message(self):
        config = RemoteConfigModel(
            version=1,
            messages=(message("a", matching=[1]), message("b")),
            rules=(rule(1, installedMacAppStore={"value": True}),),
        )
        matcher = build_matcher()

        assert matcher.evaluate_matching_rules([1], "a", config) is EvaluationResult.NEXT_MESSAGE
        assert matcher.evaluate(config).id == "b"

    def test_app_store_install_known(self):
        app = AppAttributeMatcher(
            bundle_id="id", app_version="1.0", is_installed_from_app_store=True
        )
        attribute = parse_attribute("installedMacAppStore", {"value": True})
        assert build_matcher(app=app).evaluate_attribute(attribute) is EvaluationResult.MATCH
