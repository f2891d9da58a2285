from invite_request.utils.forms import parse_nested_form


def test_flat_keys_are_kept():
    assert parse_nested_form([("a", "1"), ("b", "2")]) == {"a": "1", "b": "2"}


def test_nested_identity_payload():
    items = [
        ("user[kind]", "plus#person"),
        ("user[displayName]", "Jane Doe"),
        ("user[emails][0][value]", "jane@x.com"),
        ("user[emails][0][type]", "account"),
        ("user[emails][1][value]", "jd@y.com"),
        ("user[image][url]", "https://img/jane.jpg"),
    ]
    assert parse_nested_form(items) == {
        "user": {
            "kind": "plus#person",
            "displayName": "Jane Doe",
            "emails": [{"value": "jane@x.com", "type": "account"}, {"value": "jd@y.com"}],
            "image": {"url": "https://img/jane.jpg"},
        }
    }


def test_empty_brackets_append():
    assert parse_nested_form([("tags[]", "a"), ("tags[]", "b")]) == {"tags": ["a", "b"]}


def test_numeric_indexes_sort_numerically():
    items = [("x[10]", "ten"), ("x[2]", "two")]
    assert parse_nested_form(items) == {"x": ["two", "ten"]}


def test_malformed_key_is_taken_literally():
    assert parse_nested_form([("a[b", "1")]) == {"a[b": "1"}
