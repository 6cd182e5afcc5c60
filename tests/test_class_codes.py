import re

import pytest

from caretoshare.core.errors import CodeNotFound, Conflict
from caretoshare.services import class_code, membership
from caretoshare.services.class_code import (
    generate_class_code, is_valid_class_code, normalize_class_code,
)
from tests.helpers import create_class, login

CODE_RE = re.compile(r"^[A-Z0-9]{6}$")


def test_sequential_generation_yields_unique_codes(db, monkeypatch):
    issued = set()
    monkeypatch.setattr(class_code, "code_in_use", lambda _db, code: code in issued)
    for _ in range(1000):
        issued.add(generate_class_code(db))
    assert len(issued) == 1000
    assert all(CODE_RE.match(c) for c in issued)


def test_normalize_and_validate():
    assert normalize_class_code("  ab12cd ") == "AB12CD"
    assert is_valid_class_code("AB12CD")
    assert not is_valid_class_code("ab12cd")
    assert not is_valid_class_code("AB12C")


def test_generator_skips_codes_in_use(db, monkeypatch):
    draws = iter(["TAKEN1", "TAKEN1", "FRESH1"])
    monkeypatch.setattr(class_code, "random_class_code", lambda: next(draws))
    monkeypatch.setattr(class_code, "code_in_use", lambda _db, code: code == "TAKEN1")
    assert generate_class_code(db) == "FRESH1"


def test_generator_gives_up_after_max_attempts(db, monkeypatch):
    monkeypatch.setattr(class_code, "code_in_use", lambda _db, code: True)
    with pytest.raises(Conflict):
        generate_class_code(db, max_attempts=3)


def test_created_classes_get_unique_codes(client):
    owner = login(client, name="Owner")
    codes = {create_class(client, owner, name=f"Class {i}")["class_code"] for i in range(20)}
    assert len(codes) == 20
    assert all(CODE_RE.match(c) for c in codes)


def test_lookup_by_code_is_case_insensitive(client):
    owner = login(client, name="Owner")
    klass = create_class(client, owner)

    r = client.get(f"/classes/code/{klass['class_code'].lower()}", headers=owner["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["data"]["id"] == klass["id"]

    missing = client.get("/classes/code/ZZZZZZ", headers=owner["headers"])
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Invalid class code"


def test_malformed_code_is_rejected_without_lookup(client, db, monkeypatch):
    owner = login(client, name="Owner")
    create_class(client, owner)

    def fail_scalar(*args, **kwargs):
        raise AssertionError("malformed codes must not reach the database")

    for code in ("ab", "ABCDEFG", "AB-12!", "%%%%%%", "______"):
        with monkeypatch.context() as m:
            m.setattr(db, "scalar", fail_scalar)
            with pytest.raises(CodeNotFound):
                membership.get_class_by_code(db, code)

    for code in ("ab", "ABCDEFG"):
        r = client.get(f"/classes/code/{code}", headers=owner["headers"])
        assert r.status_code == 404
        assert r.json()["code"] == "CODE_NOT_FOUND"
