from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from push_contact.models.domain import PushContact
from push_contact.schemas.contacts import ContactCreate, ContactFilters
from push_contact.services.contact_service import (
    add_contact,
    delete_contacts_by_device_tokens,
    get_device_tokens_by_domain,
    list_contacts,
    remove_invalid_targets,
    update_contact_email,
)
from push_contact.services.dispatch_service import DispatchOutcome


def test_add_contact_stores_encrypted_email(db):
    assert add_contact(db, ContactCreate(device_token="tok-1", domain="d1", email="User@Example.com")) is True

    contact = db.scalar(select(PushContact).where(PushContact.device_token == "tok-1"))
    assert contact.domain == "d1"
    assert contact.enc_email is not None
    assert b"User@Example.com" not in contact.enc_email


def test_add_contact_rebinds_existing_token(db):
    add_contact(db, ContactCreate(device_token="tok-1", domain="d1", email="a@test.com"))
    add_contact(db, ContactCreate(device_token="tok-1", domain="d2"))

    contacts = db.scalars(select(PushContact)).all()
    assert len(contacts) == 1
    assert contacts[0].domain == "d2"
    assert list_contacts(db, ContactFilters(domain="d2"))[0].email == "a@test.com"


def test_list_contacts_filters_by_domain_and_email(db):
    add_contact(db, ContactCreate(device_token="tok-1", domain="d1", email="a@test.com"))
    add_contact(db, ContactCreate(device_token="tok-2", domain="d1", email="b@test.com"))
    add_contact(db, ContactCreate(device_token="tok-3", domain="d2", email="a@test.com"))

    by_domain = list_contacts(db, ContactFilters(domain="d1"))
    assert {c.device_token for c in by_domain} == {"tok-1", "tok-2"}

    by_email = list_contacts(db, ContactFilters(domain="d1", email="A@test.com"))
    assert [c.device_token for c in by_email] == ["tok-1"]
    assert by_email[0].email == "a@test.com"


def test_list_contacts_filters_by_modified_range(db):
    add_contact(db, ContactCreate(device_token="tok-1", domain="d1"))
    now = datetime.now(timezone.utc)

    assert len(list_contacts(db, ContactFilters(domain="d1", modified_from=now - timedelta(hours=1)))) == 1
    assert list_contacts(db, ContactFilters(domain="d1", modified_from=now + timedelta(hours=1))) == []
    assert list_contacts(db, ContactFilters(domain="d1", modified_to=now - timedelta(hours=1))) == []


def test_update_contact_email(db):
    add_contact(db, ContactCreate(device_token="tok-1", domain="d1"))

    update_contact_email(db, "tok-1", "new@test.com")

    assert list_contacts(db, ContactFilters(domain="d1", email="new@test.com"))[0].device_token == "tok-1"


def test_update_contact_email_unknown_token(db):
    with pytest.raises(ValueError):
        update_contact_email(db, "missing", "new@test.com")


def test_delete_contacts_returns_actual_deleted_count(db, seed_contacts):
    seed_contacts("d1", ["tok-1", "tok-2", "tok-3"])

    deleted = delete_contacts_by_device_tokens(db, ["tok-1", "tok-1", "tok-2", "unknown"])

    assert deleted == 2
    assert get_device_tokens_by_domain(db, "d1") == ["tok-3"]


def test_delete_contacts_with_empty_input(db):
    assert delete_contacts_by_device_tokens(db, []) == 0


def test_get_device_tokens_by_domain_is_empty_for_unknown_domain(db, seed_contacts):
    seed_contacts("d1", ["tok-1"])

    assert get_device_tokens_by_domain(db, "other") == []


def test_get_device_tokens_by_domain_requires_domain(db):
    with pytest.raises(ValueError):
        get_device_tokens_by_domain(db, "")


def test_remove_invalid_targets_only_deletes_invalid(db, seed_contacts):
    seed_contacts("d1", ["A", "B", "C"])
    outcomes = [
        DispatchOutcome("A", is_valid_target=True, is_success=True),
        DispatchOutcome("B", is_valid_target=False, is_success=False, error_detail="invalid"),
        DispatchOutcome("C", is_valid_target=True, is_success=False, error_detail="503"),
    ]

    assert remove_invalid_targets(db, outcomes) == 1
    assert get_device_tokens_by_domain(db, "d1") == ["A", "C"]


def test_remove_invalid_targets_counts_only_existing_rows(db, seed_contacts):
    seed_contacts("d1", ["A"])
    outcomes = [
        DispatchOutcome("A", is_valid_target=False, is_success=False),
        DispatchOutcome("gone", is_valid_target=False, is_success=False),
    ]

    assert remove_invalid_targets(db, outcomes) == 1
