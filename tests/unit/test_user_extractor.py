from benutzerverwaltung.core.models import BoolCell, CanonicalUser, ListCell, StringCell
from benutzerverwaltung.core.user_extractor import FieldMapping, derive_roles, extract, user_from_row


def row(identifier="abc123", first="Ada", last="Lovelace", roles=("X",), group="CS", **extra):
    cells = {
        "Funktionskennung": StringCell(identifier),
        "Vorname": StringCell(first),
        "Nachname": StringCell(last),
        "Funktion": ListCell(tuple(roles)),
        "Fachschaft": StringCell(group),
    }
    cells.update(extra)
    return cells


def test_derive_roles_prefixes_group_and_appends_it_once():
    assert derive_roles(["Admin", "Kasse"], "CS") == ["CS - Admin", "CS - Kasse", "CS"]


def test_derive_roles_can_keep_base_roles():
    assert derive_roles(["Admin"], "CS", keep_base_roles=True) == ["Admin", "CS - Admin", "CS"]


def test_user_from_row_builds_canonical_user():
    user = user_from_row(row(identifier="jdoe", first="Jane", last="Doe", roles=["Admin"]))
    assert user == CanonicalUser(
        identifier="jdoe",
        first_name="Jane",
        last_name="Doe",
        email="jdoe@hhu.de",
        matrix_id=None,
        roles=("CS - Admin", "CS"),
        enabled=True,
    )


def test_rows_sharing_identifier_merge_roles_and_keep_first_names():
    desired = extract([
        row(first="Ada", roles=["X"]),
        row(first="Other", last="Name", roles=["Y"]),
    ])
    assert list(desired) == ["abc123"]
    user = desired["abc123"]
    assert user.first_name == "Ada"
    assert user.last_name == "Lovelace"
    assert user.roles == ("CS - X", "CS", "CS - Y", "CS")


def test_merge_with_base_roles_kept_orders_first_row_before_second():
    desired = extract([row(roles=["X"]), row(roles=["Y"])], FieldMapping(keep_base_roles=True))
    assert desired["abc123"].roles == ("X", "CS - X", "CS", "Y", "CS - Y", "CS")


def test_incomplete_or_mistyped_rows_are_dropped():
    rows = [
        {k: v for k, v in row(identifier="a").items() if k != "Vorname"},
        {k: v for k, v in row(identifier="b").items() if k != "Funktion"},
        {k: v for k, v in row(identifier="c").items() if k != "Fachschaft"},
        row(identifier="d", Nachname=BoolCell(True)),
        row(identifier="e", Funktion=StringCell("Admin")),
        row(identifier=""),
        row(identifier="ok"),
    ]
    assert list(extract(rows)) == ["ok"]


def test_custom_mapping_changes_titles_and_domain():
    mapping = FieldMapping(identifier_column="Kennung", email_domain="example.org")
    cells = row()
    cells["Kennung"] = cells.pop("Funktionskennung")
    desired = extract([cells], mapping)
    assert desired["abc123"].email == "abc123@example.org"


def test_end_to_end_decode_and_extract():
    from benutzerverwaltung.core.models import (
        RawCell, SelectionColumn, SelectionOption, SelectionSubtype, TextColumn,
    )
    from benutzerverwaltung.core.table_decoder import decode

    schema = (
        TextColumn(1, "Vorname"),
        SelectionColumn(2, "Funktion", SelectionSubtype.MULTI, (SelectionOption(10, "Admin"),)),
        TextColumn(3, "Funktionskennung"),
        TextColumn(4, "Nachname"),
        TextColumn(5, "Fachschaft"),
    )
    rows = [(RawCell(1, "Jane"), RawCell(2, [10]), RawCell(3, "jdoe"), RawCell(4, "Doe"), RawCell(5, "CS"))]

    desired = extract(decode(schema, rows))

    assert desired == {
        "jdoe": CanonicalUser(
            identifier="jdoe",
            first_name="Jane",
            last_name="Doe",
            email="jdoe@hhu.de",
            roles=("CS - Admin", "CS"),
            enabled=True,
        )
    }
