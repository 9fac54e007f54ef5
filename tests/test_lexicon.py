"""
Tests for the Lexicon & Relationship Store
===========================================
"""

import pytest

from lexicon.lexicon_store import LexiconError, load_lexicon, parse_lexicon


MINIMAL = {
    "tables": {
        "tasks": {
            "aliases": ["task"],
            "user_fields": ["assigned_to"],
            "relationships": {"users": {"foreign_key": "assigned_to"}},
        },
        "users": {"user_fields": ["id", "full_name"]},
    },
}


class TestLoading:
    def test_shipped_lexicon_declares_all_business_tables(self, lexicon):
        assert set(lexicon.table_names()) == {
            "customers", "products", "sales", "stock", "tasks", "users", "shifts", "attendance",
        }

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(LexiconError):
            load_lexicon(tmp_path / "nope.yaml")

    def test_invalid_yaml_is_fatal(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("tables: [unclosed\n")
        with pytest.raises(LexiconError):
            load_lexicon(path)

    def test_document_without_tables_is_rejected(self):
        with pytest.raises(LexiconError):
            parse_lexicon({"pronouns": ["me"]})

    def test_unknown_table_reference_is_rejected(self):
        raw = dict(MINIMAL, fallback_tables=["invoices"])
        with pytest.raises(LexiconError, match="invoices"):
            parse_lexicon(raw)

    def test_unsupported_comparison_operator_is_rejected(self):
        raw = dict(MINIMAL, comparisons={"between": ["between"]})
        with pytest.raises(LexiconError):
            parse_lexicon(raw)

    def test_minimal_lexicon_defaults(self):
        lexicon = parse_lexicon(MINIMAL)
        tasks = lexicon.taxonomy("tasks")
        assert tasks.primary_key == "id"
        assert tasks.relationships["users"].target_key == "id"
        assert lexicon.synonym_phrases("status") == []


class TestTaxonomy:
    def test_owner_field_is_first_user_field(self, lexicon):
        assert lexicon.taxonomy("tasks").owner_field == "assigned_to"
        assert lexicon.taxonomy("sales").owner_field == "sales_rep_id"
        assert lexicon.taxonomy("products").owner_field is None

    def test_references_foreign_key_and_own_primary_key(self, lexicon):
        assert lexicon.taxonomy("tasks").references("assigned_to", "users")
        assert lexicon.taxonomy("users").references("id", "users")
        assert not lexicon.taxonomy("users").references("full_name", "users")
        assert not lexicon.taxonomy("sales").references("product_name", "products")

    def test_numeric_column_hints(self, lexicon):
        sales = lexicon.taxonomy("sales")
        assert sales.numeric_column_for(["laptop", "sales", "above", "1000"]) == "total_amount"
        assert sales.numeric_column_for(["units", "above", "3"]) == "quantity"
        assert sales.numeric_column_for([]) == "total_amount"
        assert lexicon.taxonomy("stock").numeric_column_for(["stock", "below", "10"]) == "quantity_available"
        assert lexicon.taxonomy("tasks").numeric_column_for(["above", "3"]) is None

    def test_unknown_role_raises(self, lexicon):
        with pytest.raises(KeyError):
            lexicon.taxonomy("tasks").fields_for("colour")


class TestRelationships:
    def test_related_tables_are_symmetric(self, lexicon):
        assert "sales" in lexicon.related_tables("products")
        assert "products" in lexicon.related_tables("sales")
        assert {"tasks", "shifts", "attendance", "sales"} <= lexicon.related_tables("users")

    def test_table_words_prefer_plural_names(self, lexicon):
        words = lexicon.table_words()
        assert words["tasks"] == ("tasks", 0.95)
        assert words["task"] == ("tasks", 0.9)
        assert words["orders"] == ("sales", 0.9)

    def test_reserved_words_cover_vocabulary(self, lexicon):
        reserved = lexicon.reserved_words()
        for word in ("my", "today", "week", "above", "pending", "warehouse", "the", "tasks"):
            assert word in reserved
        assert "laptop" not in reserved
