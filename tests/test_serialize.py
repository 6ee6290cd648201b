import json
from decimal import Decimal

import pytest

from recordnest import EntityKind, UnsupportedRecordError, loads_ruleset, serialize, to_tree
from recordnest.config import default_ruleset
from recordnest.engine import Destination, RuleEngine
from recordnest.serialize import encode, numeric_check, restructure

CONTACT = {
    "id": "c1",
    "deleted": 0,
    "date_entered": "2024-01-02 10:00:00",
    "created_by": "1",
    "salutation": "Ms.",
    "first_name": " Ann ",
    "last_name": "Lee",
    "full_name": "Ann Lee",
    "title": "CTO",
    "phone_work": "(555) 123-4567",
    "phone_mobile": "+1 555 987 6543",
    "email": "raw@x.com",
    "email1": "a@x.com",
    "email2": "b@x.com",
    "primary_address_street": "1 Main St",
    "primary_address_city": "Springfield",
    "alt_address_city": "",
    "description": None,
    "module_name": "Contacts",
}


def _keys(tree):
    for key, value in tree.items():
        yield key
        if isinstance(value, dict):
            yield from _keys(value)


def _leaves(tree):
    for value in tree.values():
        if isinstance(value, dict):
            yield from _leaves(value)
        elif isinstance(value, list):
            yield from value
        else:
            yield value


def test_contact():
    tree = to_tree(CONTACT)
    assert tree == {
        "id": "c1",
        "meta": {"created": {"date": "2024-01-02 10:00:00", "user_id": "1"}},
        "name": {"salutation": "Ms.", "first": "Ann", "last": "Lee"},
        "account": {"title": "CTO"},
        "phone": {"work": "5551234567", "mobile": "+15559876543"},
        "email": ["a@x.com", "b@x.com"],
        "address": {"primary": {"street": "1 Main St", "city": "Springfield"}},
        "module_name": "Contacts",
    }
    assert list(tree) == ["id", "meta", "name", "account", "phone", "email", "address", "module_name"]


def test_garbage_keys_never_appear():
    record = {key: "value" for key in default_ruleset().garbage}
    record["id"] = "x1"
    tree = to_tree(record, EntityKind.GENERIC)
    assert tree == {"id": "x1"}

    garbage = set(default_ruleset().garbage)
    assert not garbage & set(_keys(to_tree(CONTACT)))


def test_no_empty_leaves_when_hiding_empties():
    record = dict(CONTACT, phone_fax="n/a", title="   ", account_name="&nbsp;")
    for leaf in _leaves(to_tree(record)):
        assert leaf not in ("", None)


def test_empties_are_kept_when_not_hidden():
    record = {"a": "", "b": None, "phone_home": ""}
    tree = to_tree(record, EntityKind.GENERIC, hide_empty=False)
    assert tree == {"a": "", "b": None, "phone": {"home": ""}}


def test_phone_office():
    tree = to_tree({"phone_office": "(555) 123-4567"}, EntityKind.GENERIC)
    assert tree["phone"]["office"] == "5551234567"


def test_emails_collected_in_order():
    tree = to_tree({"email1": "a@x.com", "email2": "b@x.com"}, EntityKind.GENERIC)
    assert tree["email"] == ["a@x.com", "b@x.com"]


def test_raw_email_is_not_emitted():
    tree = to_tree({"email": "raw@x.com"}, EntityKind.GENERIC)
    assert tree == {}


def test_person_name():
    tree = to_tree({"first_name": "Ann", "last_name": "Lee", "name": "Ann Lee"}, EntityKind.PERSON)
    assert tree["name"] == {"first": "Ann", "last": "Lee"}
    assert "name" not in tree["name"]


def test_generic_name():
    record = {"id": "a1", "name": "Acme Corp", "first_name": "Stray", "phone_office": "555.000.1111"}
    tree = to_tree(record, EntityKind.GENERIC)
    assert tree == {"id": "a1", "name": {"name": "Acme Corp"}, "phone": {"office": "5550001111"}}


def test_entity_kind_from_module_name():
    record = {"name": "Acme Corp", "first_name": "Ann", "module_name": "Accounts"}
    assert to_tree(record)["name"] == {"name": "Acme Corp"}
    record["module_name"] = "Leads"
    assert to_tree(record)["name"] == {"first": "Ann"}


def test_entity_kind_as_string():
    assert to_tree({"first_name": "Ann"}, "person") == {"name": {"first": "Ann"}}


def test_identity_fallback():
    assert to_tree({"foo_bar_custom": "x"}, EntityKind.GENERIC) == {"foo_bar_custom": "x"}


def test_last_write_wins():
    record = {"report_to_name": "Old", "reports_to_name": "New"}
    assert to_tree(record, EntityKind.GENERIC) == {"reports_to": {"name": "New"}}


def test_composite_values_are_dropped():
    record = {"id": "x1", "tags": ["a", "b"], "related": {"id": "y"}}
    assert to_tree(record, EntityKind.GENERIC) == {"id": "x1"}


class Contact:
    entity_kind = EntityKind.PERSON

    def __init__(self):
        self.id = "c9"
        self.first_name = "Ann"
        self.last_name = "Lee"
        self._cache = {"loaded": True}


class Account:
    module_name = "Accounts"

    def __init__(self):
        self.name = "Acme Corp"


def test_object_records():
    assert to_tree(Contact()) == {"id": "c9", "name": {"first": "Ann", "last": "Lee"}}
    assert to_tree(Account()) == {"name": {"name": "Acme Corp"}}


@pytest.mark.parametrize("record", ["a string", 42, ["a", "b"], None])
def test_unsupported_records(record):
    with pytest.raises(UnsupportedRecordError):
        to_tree(record)


def test_unsupported_record_is_a_type_error():
    with pytest.raises(TypeError):
        to_tree(3.14)


def test_custom_ruleset():
    ruleset = loads_ruleset("""
garbage: [secret]
rules:
  - {kind: pattern, pattern: '^(?P<site>[a-z]+)_url$', path: [links, '{site}']}
""")
    record = {"secret": "s", "github_url": "https://github.com/acme", "phone_work": "555 1234"}
    tree = to_tree(record, EntityKind.GENERIC, ruleset=ruleset)
    assert tree == {"links": {"github": "https://github.com/acme"}, "phone_work": "555 1234"}


def test_report():
    tree, report = restructure(CONTACT)
    assert report["fields_in"] == len(CONTACT)
    assert report["entity_kind"] == EntityKind.PERSON
    assert report["dropped"] == ["deleted", "full_name", "email", "alt_address_city", "description"]
    assert report["fields_out"] == len(CONTACT) - len(report["dropped"])


def test_failing_transform_keeps_value(caplog):
    def explode(value):
        raise ValueError("boom")

    class ExplodingEngine(RuleEngine):
        def resolve(self, key):
            return Destination(path=("phone", key), transform=explode)

    engine = ExplodingEngine(loads_ruleset("{}"))
    tree, _ = restructure({"work": "555 1234", "home": "555 9876"}, EntityKind.GENERIC, engine=engine)
    assert tree == {"phone": {"work": "555 1234", "home": "555 9876"}}
    assert "Could not transform field" in caplog.text


def test_serialize_is_deterministic():
    assert serialize(CONTACT) == serialize(CONTACT)
    assert serialize(CONTACT, pretty=True) == serialize(CONTACT, pretty=True)


def test_serialize_compact_with_numbers():
    record = {
        "phone_office": "(555) 123-4567",
        "phone_home": "+44 20 7946 0958",
        "zip": "01234",
        "count": "42",
        "ratio": "0.5",
        "url": "https://acme.example/a/b",
        "city": "Montréal",
    }
    assert serialize(record, EntityKind.GENERIC) == (
        '{"phone":{"office":5551234567,"home":"+442079460958"},"zip":"01234",'
        '"count":42,"ratio":0.5,"url":"https://acme.example/a/b","city":"Montréal"}'
    )


def test_serialize_without_numbers():
    assert serialize({"count": "42"}, EntityKind.GENERIC, numbers=False) == '{"count":"42"}'


def test_serialize_pretty():
    text = serialize({"id": "x1", "phone_work": "555"}, EntityKind.GENERIC, pretty=True)
    assert '\n    "id": "x1"' in text
    assert json.loads(text) == {"id": "x1", "phone": {"work": 555}}


def test_numeric_check_leaves_other_values():
    tree = {"a": "1e3", "b": "-7", "c": "1.", "d": True, "e": ["3", "x"], "f": "0"}
    assert numeric_check(tree) == {"a": 1000.0, "b": -7, "c": "1.", "d": True, "e": [3, "x"], "f": 0}


def test_encode_does_not_touch_tree():
    tree = {"count": "42"}
    encode(tree)
    assert tree == {"count": "42"}


def test_decimal_values_are_kept_and_encoded():
    record = {"amount": Decimal("12.50"), "units": Decimal("3"), "id": "x"}
    tree = to_tree(record, EntityKind.GENERIC)
    assert tree == {"amount": Decimal("12.50"), "units": Decimal("3"), "id": "x"}
    assert serialize(record, EntityKind.GENERIC) == '{"amount":12.5,"units":3,"id":"x"}'
    assert serialize({"rate": Decimal("NaN")}, EntityKind.GENERIC, numbers=False) == '{"rate":"NaN"}'


def test_encode_still_rejects_other_objects():
    with pytest.raises(TypeError):
        encode({"when": object()})


def test_ruleset_and_engine_are_exclusive():
    ruleset = loads_ruleset("{}")
    with pytest.raises(ValueError):
        restructure({"id": "x"}, EntityKind.GENERIC, ruleset=ruleset, engine=RuleEngine(ruleset))


def test_unhashable_module_name_is_generic():
    tree = to_tree({"module_name": ["Contacts"], "name": "Acme"})
    assert tree == {"name": {"name": "Acme"}}
