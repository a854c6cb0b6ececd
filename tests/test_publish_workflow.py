from datetime import timedelta

import pytest
from sqlmodel import select

from app.core.errors import (
    ConflictError,
    EmailUnverifiedError,
    ForbiddenError,
    InsufficientTokensError,
    InvalidSelectionError,
    NotFoundError,
    PublishingDisabledError,
    StackingLimitError,
)
from app.models import Annonce, MediaType, Profile, ProfileMedia
from app.schemas.annonce import AnnonceCreate
from app.services.publishing import PublishWorkflow

from conftest import NOW, build_config


@pytest.fixture
def workflow(publishing_config):
    return PublishWorkflow(publishing_config, require_verified_email=True, clock=lambda: NOW)


def payload(profile, **fields) -> AnnonceCreate:
    data = {"profile_id": profile.id, "title": "  Bonjour Paris  ", "body": "Disponible ce soir"}
    data.update(fields)
    return AnnonceCreate.model_validate(data)


def annonces(db):
    return db.exec(select(Annonce)).all()


def test_publish_creates_annonce_and_charges_tokens(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5)

    result = workflow.publish(
        db,
        user,
        payload(
            profile,
            tarif="150",
            services=["massage"],
            disponibilite={"date": "2026-03-02", "heure_debut": "20:00", "duree": "2h"},
            promote={"featured": {"optionId": 1}, "autorenew": {"optionId": 1}},
        ),
    )

    annonce = result.annonce
    assert annonce.title == "Bonjour Paris"
    assert annonce.active is True
    assert result.quote.total_tokens == 4
    assert result.tokens_balance == 1

    db.refresh(user)
    db.refresh(profile)
    assert user.tokens_balance == 1
    assert profile.is_pro is True
    assert profile.tarif == "150"
    assert profile.services == ["massage"]
    assert profile.disponibilite == {"date": "2026-03-02", "heure_debut": "20:00", "duree": "2h"}

    assert set(annonce.promotion) == {"featured", "autorenew"}
    assert annonce.promotion["featured"]["expires_at"] == (NOW + timedelta(days=3)).isoformat()
    assert annonce.promotion["autorenew"]["every_hours"] == 1


def test_vip_discount_is_applied_on_publish(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5, is_vip=True)

    result = workflow.publish(
        db, user, payload(profile, promote={"featured": {"optionId": 1}, "autorenew": {"optionId": 1}})
    )

    assert result.quote.vip_discount == 1
    assert result.tokens_balance == 2


def test_republish_updates_the_active_annonce(db, make_account, workflow):
    user, profile = make_account(tokens_balance=10)

    first = workflow.publish(db, user, payload(profile, title="Premier"))
    second = workflow.publish(db, user, payload(profile, title="Second", body=None))

    assert second.annonce.id == first.annonce.id
    assert len(annonces(db)) == 1
    assert second.annonce.title == "Second"
    assert second.annonce.body is None
    assert second.tokens_balance == 8


def test_unset_profile_fields_are_kept(db, make_account, workflow):
    user, profile = make_account(tokens_balance=10)

    workflow.publish(db, user, payload(profile, tarif="100", lieu="Hotel"))
    workflow.publish(db, user, payload(profile, tarif="120"))

    db.refresh(profile)
    assert profile.tarif == "120"
    assert profile.lieu == "Hotel"


def test_media_is_replaced(db, make_account, workflow):
    user, profile = make_account(tokens_balance=10)
    for idx in range(2):
        db.add(ProfileMedia(profile_id=profile.id, type=MediaType.PHOTO, url=f"https://cdn.test/old{idx}.jpg"))
    db.commit()

    workflow.publish(db, user, payload(profile, media=[
        {"type": "video", "url": "https://cdn.test/new.mp4", "key": "new.mp4"},
        {"type": "photo", "url": "https://cdn.test/new.jpg", "sort_order": 7},
    ]))

    media = db.exec(select(ProfileMedia).order_by(ProfileMedia.sort_order)).all()
    assert [(m.url, m.sort_order) for m in media] == [
        ("https://cdn.test/new.mp4", 0),
        ("https://cdn.test/new.jpg", 7),
    ]

    # Без медиа в форме прежние остаются
    workflow.publish(db, user, payload(profile))
    assert len(db.exec(select(ProfileMedia)).all()) == 2


def test_foreign_profile_is_forbidden(db, make_account, workflow):
    owner, profile = make_account(username="alice")
    intruder, _ = make_account(username="mallory", email=None, email_verified=False)

    # Чужой профиль проверяется раньше email
    with pytest.raises(ForbiddenError):
        workflow.publish(db, intruder, payload(profile))

    with pytest.raises(ForbiddenError):
        workflow.publish(db, owner, payload(profile, profile_id=9999))

    assert annonces(db) == []


@pytest.mark.parametrize("email, verified", [(None, False), ("bob@example.com", False), (None, True)])
def test_email_must_be_verified(db, make_account, workflow, email, verified):
    user, profile = make_account(email=email, email_verified=verified)

    with pytest.raises(EmailUnverifiedError):
        workflow.publish(db, user, payload(profile))

    assert annonces(db) == []


def test_email_check_can_be_disabled(db, make_account, publishing_config):
    user, profile = make_account(email=None, email_verified=False)
    workflow = PublishWorkflow(publishing_config, require_verified_email=False, clock=lambda: NOW)

    result = workflow.publish(db, user, payload(profile))

    assert result.annonce.id is not None


def test_publishing_disabled(db, make_account):
    user, profile = make_account(tokens_balance=5)
    config = build_config(publication={"enabled": False, "tokenRequired": 1})
    workflow = PublishWorkflow(config, clock=lambda: NOW)

    with pytest.raises(PublishingDisabledError):
        workflow.publish(db, user, payload(profile))

    assert annonces(db) == []


def test_insufficient_tokens(db, make_account, workflow):
    user, profile = make_account(tokens_balance=1)

    with pytest.raises(InsufficientTokensError) as exc_info:
        workflow.publish(db, user, payload(profile, promote={"autorenew": {"optionId": 1}}))

    assert exc_info.value.required == 3
    assert exc_info.value.balance == 1
    assert exc_info.value.extra["missing"] == 2
    db.refresh(user)
    assert user.tokens_balance == 1
    assert annonces(db) == []


def test_unknown_option_is_rejected_without_side_effects(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5)

    with pytest.raises(InvalidSelectionError):
        workflow.publish(db, user, payload(profile, promote={"urgent": {"optionId": 1}}))

    db.refresh(user)
    db.refresh(profile)
    assert user.tokens_balance == 5
    assert profile.is_pro is False
    assert annonces(db) == []


def test_stacking_limit_is_enforced(db, make_account):
    user, profile = make_account(tokens_balance=50)
    config = build_config(rules={"stacking": {"maxTotalTokens": 2}})
    workflow = PublishWorkflow(config, clock=lambda: NOW)

    with pytest.raises(StackingLimitError):
        workflow.publish(db, user, payload(profile, promote={"autorenew": {"optionId": 1}}))


def test_failed_deduction_rolls_everything_back(db, make_account, workflow, monkeypatch):
    user, profile = make_account(tokens_balance=5)

    def broken_deduct(self, db, account, amount):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(PublishWorkflow, "_deduct_tokens", broken_deduct)

    with pytest.raises(RuntimeError):
        workflow.publish(db, user, payload(profile, media=[
            {"type": "photo", "url": "https://cdn.test/a.jpg"},
        ], promote={"featured": {"optionId": 1}}))

    assert annonces(db) == []
    assert db.exec(select(ProfileMedia)).all() == []
    db.refresh(user)
    db.refresh(profile)
    assert user.tokens_balance == 5
    assert profile.is_pro is False


def test_set_active(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5)
    other, _ = make_account(username="bob", email="bob@example.com")
    annonce = workflow.publish(db, user, payload(profile)).annonce

    with pytest.raises(ForbiddenError):
        workflow.set_active(db, other, annonce.id, False)

    with pytest.raises(NotFoundError):
        workflow.set_active(db, user, 9999, False)

    assert workflow.set_active(db, user, annonce.id, False).active is False


def test_reactivation_conflicts_with_another_active_annonce(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5)
    old = workflow.publish(db, user, payload(profile, title="Ancienne")).annonce
    workflow.set_active(db, user, old.id, False)
    workflow.publish(db, user, payload(profile, title="Nouvelle"))

    assert len(annonces(db)) == 2

    with pytest.raises(ConflictError):
        workflow.set_active(db, user, old.id, True)

    with pytest.raises(ConflictError):
        workflow.admin_set_active(db, old.id, True)


def test_concurrent_insert_hits_the_active_index(db, make_account, workflow, monkeypatch):
    user, profile = make_account(tokens_balance=5)
    db.add(Annonce(profile_id=profile.id, title="Déjà en ligne", created_at=NOW, updated_at=NOW))
    db.commit()

    # Вторая публикация не увидела активное объявление и вставляет своё
    def racing_insert(self, db, profile, payload, resolved, now):
        annonce = Annonce(profile_id=profile.id, title=payload.title, created_at=now, updated_at=now)
        db.add(annonce)
        db.flush()
        return annonce

    monkeypatch.setattr(PublishWorkflow, "_upsert_annonce", racing_insert)

    with pytest.raises(ConflictError):
        workflow.publish(db, user, payload(profile, promote={"featured": {"optionId": 1}}))

    db.refresh(user)
    assert user.tokens_balance == 5
    rows = annonces(db)
    assert len(rows) == 1
    assert rows[0].title == "Déjà en ligne"


def test_timestamps_are_stored_and_read_back(db, make_account, workflow):
    user, profile = make_account(tokens_balance=5)

    annonce = workflow.publish(db, user, payload(profile)).annonce
    db.expire_all()

    stored = db.get(Annonce, annonce.id)
    assert stored.created_at == NOW
    assert stored.updated_at == NOW
    assert db.get(Profile, profile.id).updated_at == NOW
