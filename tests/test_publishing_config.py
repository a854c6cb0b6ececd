import json

import pytest
from pydantic import ValidationError

from app.core.errors import InvalidSelectionError
from app.services.publishing_config import (
    DEFAULT_PUBLISHING_CONFIG,
    PromotionConfig,
    load_publishing_config,
    public_payload,
)


def test_default_table():
    config = DEFAULT_PUBLISHING_CONFIG

    assert config.publication.enabled is True
    assert config.publication.token_required == 1
    assert [o.days for o in config.promote.extended.options] == [45, 90, 180, 365]
    assert len(config.promote.featured.options) == 7
    assert config.find_option("autorenew", 5).every_hours == 4
    assert [o.id for o in config.promote.urgent.options] == [2, 3, 4]
    assert config.rules.vip.definition == ["featured", "autorenew"]
    assert config.rules.vip.discount_tokens == 1
    assert config.rules.stacking.max_total_tokens == 20


def test_same_id_allowed_across_categories():
    config = DEFAULT_PUBLISHING_CONFIG

    assert config.find_option("featured", 1).tokens == 1
    assert config.find_option("autorenew", 1).tokens == 2


def test_duplicate_id_within_category_is_rejected():
    with pytest.raises(ValidationError):
        PromotionConfig.model_validate({
            "promote": {
                "featured": {
                    "options": [
                        {"id": 1, "days": 3, "tokens": 1},
                        {"id": 1, "days": 7, "tokens": 2},
                    ]
                }
            }
        })


@pytest.mark.parametrize("option", [
    {"id": 1, "days": 0, "tokens": 1},
    {"id": 1, "days": 3, "tokens": -1},
])
def test_invalid_option_values_are_rejected(option):
    with pytest.raises(ValidationError):
        PromotionConfig.model_validate({"promote": {"urgent": {"options": [option]}}})


def test_unknown_vip_category_is_rejected():
    with pytest.raises(ValidationError):
        PromotionConfig.model_validate({"rules": {"vip": {"definition": ["gold"]}}})


def test_config_is_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_PUBLISHING_CONFIG.publication.enabled = False


def test_require_option():
    with pytest.raises(InvalidSelectionError) as exc_info:
        DEFAULT_PUBLISHING_CONFIG.require_option("urgent", 1)

    assert exc_info.value.extra == {"category": "urgent", "option_id": 1}
    assert DEFAULT_PUBLISHING_CONFIG.require_option("urgent", 2).days == 7


def test_load_default_when_no_path():
    assert load_publishing_config(None) is DEFAULT_PUBLISHING_CONFIG


def test_load_from_file(tmp_path):
    path = tmp_path / "publishing.json"
    path.write_text(json.dumps({
        "publication": {"enabled": False, "tokenRequired": 2},
        "promote": {"featured": {"options": [{"id": 9, "days": 1, "tokens": 1}]}},
    }), encoding="utf-8")

    config = load_publishing_config(str(path))

    assert config.publication.enabled is False
    assert config.publication.token_required == 2
    assert config.find_option("featured", 9).days == 1
    assert config.promote.autorenew.options == []


def test_public_payload_hides_rules():
    payload = public_payload(DEFAULT_PUBLISHING_CONFIG)

    assert set(payload) == {"publication", "promote"}
    extended = payload["promote"]["extended"]["options"][0]
    assert extended["price"] == 4600
    assert extended["price_promo"] == 3220
    assert extended["promo_percent"] == 30
    assert payload["promote"]["autorenew"]["options"][0]["every_hours"] == 1


def test_stacking_cap_defaults_when_omitted(tmp_path):
    path = tmp_path / "publishing.json"
    path.write_text(json.dumps({"rules": {"vip": {"definition": ["featured"], "discountTokens": 1}}}), encoding="utf-8")

    assert load_publishing_config(str(path)).rules.stacking.max_total_tokens == 20
    assert PromotionConfig().rules.stacking.max_total_tokens == 20

    uncapped = PromotionConfig.model_validate({"rules": {"stacking": {"maxTotalTokens": None}}})
    assert uncapped.rules.stacking.max_total_tokens is None
