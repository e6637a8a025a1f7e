"""Tests for SQL Server object naming.

Verifies that:
- ``TableName.new`` substitutes ``dbo`` for an empty schema
- ``get_parts`` round-trips names, including escaped ``]``
- Non-canonical values parse to empty parts
- ``matches_table`` accepts bare, dotted and canonical names
"""

from erdos.naming import TableName, format_object_name, matches_table, quote_identifier


class TestFormatObjectName:
    """Verify bracket quoting of identifiers."""

    def test_single_part(self):
        """One part is bracketed."""
        assert format_object_name("Orders") == "[Orders]"

    def test_multiple_parts_joined(self):
        """Parts are bracketed and joined with dots."""
        assert format_object_name("sales", "Orders", "Id") == "[sales].[Orders].[Id]"

    def test_closing_bracket_escaped(self):
        """An embedded ] is doubled."""
        assert quote_identifier("odd]name") == "[odd]]name]"


class TestTableName:
    """Verify canonical table names."""

    def test_empty_schema_defaults_to_dbo(self):
        """An empty schema becomes dbo."""
        assert str(TableName.new("", "Orders")) == "[dbo].[Orders]"

    def test_none_schema_defaults_to_dbo(self):
        """A missing schema becomes dbo."""
        assert TableName.new(None, "Orders") == TableName("[dbo].[Orders]")

    def test_get_parts(self):
        """Schema and table are recovered."""
        assert TableName.new("sales", "Orders").get_parts() == ("sales", "Orders")

    def test_get_parts_unescapes(self):
        """Escaped brackets are restored in the parts."""
        table = TableName.new("we]ird", "ta]ble")
        assert table.get_parts() == ("we]ird", "ta]ble")

    def test_get_parts_non_canonical(self):
        """A value that is not [schema].[table] yields empty parts."""
        assert TableName("Orders").get_parts() == ("", "")

    def test_is_empty(self):
        """Blank table part is empty; a real table is not."""
        assert TableName.new("dbo", "").is_empty()
        assert TableName("garbage").is_empty()
        assert not TableName.new("dbo", "Orders").is_empty()

    def test_equal_and_hashable(self):
        """Equal names collapse in a set."""
        names = {TableName.new("", "A"), TableName.new("dbo", "A")}
        assert len(names) == 1

    def test_ordering_is_lexicographic(self):
        """Sorting uses the canonical string."""
        names = [TableName.new("dbo", "b"), TableName.new("dbo", "a")]
        assert [str(n) for n in sorted(names)] == ["[dbo].[a]", "[dbo].[b]"]


class TestMatchesTable:
    """Verify skip-list name matching."""

    def test_bare_name(self):
        """Bare table name matches."""
        assert matches_table(TableName.new("sales", "Orders"), ["Orders"])

    def test_dotted_name(self):
        """schema.table matches."""
        assert matches_table(TableName.new("sales", "Orders"), ["sales.Orders"])

    def test_canonical_name(self):
        """[schema].[table] matches."""
        assert matches_table(TableName.new("sales", "Orders"), ["[sales].[Orders]"])

    def test_whitespace_stripped(self):
        """Surrounding whitespace in the list is ignored."""
        assert matches_table(TableName.new("dbo", "Orders"), [" Orders "])

    def test_no_match(self):
        """Other names and other schemas do not match."""
        table = TableName.new("sales", "Orders")
        assert not matches_table(table, ["Customers", "dbo.Orders"])
        assert not matches_table(table, [])
