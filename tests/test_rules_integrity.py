"""Tests for the mapping analyzers."""

import pytest

from querydoctor.analyzer.collections import QueryTrace
from querydoctor.analyzer.models import IssueCategory, MappingRecord, QueryRecord, Severity
from querydoctor.analyzer.rules import (
    CascadeAll,
    DecimalPrecision,
    FloatForMoney,
    OnDeleteCascadeMismatch,
    OrphanRemovalWithoutCascadeRemove,
)
from querydoctor.analyzer.rules.cascade_all import has_cascade_all
from querydoctor.analyzer.rules.float_for_money import is_money_field
from querydoctor.analyzer.rules.on_delete_cascade_mismatch import identify_mismatch


def make_mapping(entity: str, field: str, **kwargs) -> MappingRecord:
    return MappingRecord(entity=f"App\\Entity\\{entity}", field=field, **kwargs)


class TestCascadeAll:

    def test_towards_independent_entity_is_critical(self):
        mapping = make_mapping(
            "Order", "customer",
            association_type="many_to_one",
            target_entity="App\\Entity\\User",
            cascade=["all"],
        )

        issue = CascadeAll().analyze_mappings([mapping]).first()

        assert issue.severity == Severity.CRITICAL
        assert issue.subject == "Order.customer"
        assert issue.category == IssueCategory.INTEGRITY
        assert issue.suggestion.context["target"] == "User"

    def test_many_to_many_category_is_critical(self):
        mapping = make_mapping(
            "Product", "categories",
            association_type="many_to_many",
            target_entity="App\\Entity\\Category",
            cascade=["all"],
        )

        assert CascadeAll().analyze_mappings([mapping]).first().severity == Severity.CRITICAL

    def test_one_to_many_is_warning(self):
        mapping = make_mapping(
            "Order", "items",
            association_type="one_to_many",
            target_entity="App\\Entity\\OrderItem",
            cascade=["all"],
        )

        assert CascadeAll().analyze_mappings([mapping]).first().severity == Severity.WARNING

    def test_spelled_out_operations_count_as_all(self):
        """Should treat persist, remove, refresh and detach as cascade all."""
        assert has_cascade_all(("persist", "remove", "refresh", "detach"))
        assert has_cascade_all(("persist", "remove", "refresh", "detach", "merge"))
        assert not has_cascade_all(("persist", "remove"))
        assert not has_cascade_all(("persist", "remove", "refresh", "detach", "custom"))

    def test_plain_columns_are_ignored(self):
        mapping = make_mapping("Order", "reference", column_type="string")

        assert CascadeAll().analyze_mappings([mapping]).is_empty()

    def test_query_trace_gives_nothing(self):
        trace = QueryTrace([QueryRecord(sql="SELECT * FROM orders")])

        assert CascadeAll().analyze(trace).is_empty()


class TestOrphanRemovalWithoutCascadeRemove:

    @pytest.mark.parametrize("cascade, expected", [
        ([], 1),
        (["persist"], 1),
        (["persist", "remove"], 0),
        (["all"], 0),
    ])
    def test_cascade_combinations(self, cascade, expected):
        mapping = make_mapping(
            "Order", "items",
            association_type="one_to_many",
            target_entity="App\\Entity\\OrderItem",
            orphan_removal=True,
            cascade=cascade,
        )

        assert len(OrphanRemovalWithoutCascadeRemove().analyze_mappings([mapping])) == expected

    def test_only_one_to_many(self):
        mapping = make_mapping(
            "Order", "invoice",
            association_type="one_to_one",
            target_entity="App\\Entity\\Invoice",
            orphan_removal=True,
        )

        assert OrphanRemovalWithoutCascadeRemove().analyze_mappings([mapping]).is_empty()

    def test_issue(self):
        mapping = make_mapping(
            "Order", "items",
            association_type="one_to_many",
            target_entity="App\\Entity\\OrderItem",
            orphan_removal=True,
        )

        issue = OrphanRemovalWithoutCascadeRemove().analyze_mappings([mapping]).first()

        assert issue.severity == Severity.WARNING
        assert issue.subject == "Order.items"


class TestOnDeleteCascadeMismatch:

    def pair(self, cascade=(), orphan_removal=False, on_delete=None):
        collection = MappingRecord(
            entity="App\\Entity\\Order",
            field="items",
            association_type="one_to_many",
            target_entity="App\\Entity\\OrderItem",
            mapped_by="order",
            cascade=list(cascade),
            orphan_removal=orphan_removal,
        )
        inverse = MappingRecord(
            entity="App\\Entity\\OrderItem",
            field="order",
            association_type="many_to_one",
            target_entity="App\\Entity\\Order",
            inversed_by="items",
            on_delete=on_delete,
        )
        return [collection, inverse]

    @pytest.mark.parametrize("cascade, orphan_removal, on_delete, mismatch", [
        (["remove"], False, "SET NULL", "orm_cascade_db_setnull"),
        ([], True, "set null", "orm_orphan_db_setnull"),
        (["persist"], False, "CASCADE", "db_cascade_no_orm"),
        (["all"], False, None, "orm_cascade_no_db"),
    ])
    def test_mismatches(self, cascade, orphan_removal, on_delete, mismatch):
        issues = OnDeleteCascadeMismatch().analyze_mappings(self.pair(cascade, orphan_removal, on_delete))

        assert len(issues) == 1
        issue = issues.first()
        assert issue.suggestion.context["mismatch_type"] == mismatch
        assert issue.subject == "Order.items"

    @pytest.mark.parametrize("cascade, on_delete", [
        (["remove"], "CASCADE"),
        ([], None),
        (["persist"], "SET NULL"),
    ])
    def test_consistent_settings(self, cascade, on_delete):
        assert OnDeleteCascadeMismatch().analyze_mappings(self.pair(cascade, False, on_delete)).is_empty()

    def test_without_inverse_side(self):
        """Should skip collections whose owning side was not supplied."""
        collection, _ = self.pair(["remove"], False, "SET NULL")

        assert OnDeleteCascadeMismatch().analyze_mappings([collection]).is_empty()

    def test_identify_mismatch_precedence(self):
        assert identify_mismatch(True, True, "SET NULL") == "orm_cascade_db_setnull"
        assert identify_mismatch(False, False, "") is None


class TestFloatForMoney:

    @pytest.mark.parametrize("entity, field", [
        ("Invoice", "totalAmount"),
        ("Order", "value"),
        ("Product", "price"),
    ])
    def test_money_stored_as_float(self, entity, field):
        mapping = make_mapping(entity, field, column_type="double")

        issue = FloatForMoney().analyze_mappings([mapping]).first()

        assert issue.severity == Severity.CRITICAL
        assert issue.title == f"Float Used for Money: {entity}.{field}"

    @pytest.mark.parametrize("entity, field", [
        ("Parcel", "weight"),
        ("Location", "latitude"),
        ("Contract", "hourlyRate"),
        ("Report", "value"),
    ])
    def test_non_money_floats(self, entity, field):
        assert not is_money_field(entity, field)
        mapping = make_mapping(entity, field, column_type="float")

        assert FloatForMoney().analyze_mappings([mapping]).is_empty()

    def test_decimal_money_is_fine(self):
        mapping = make_mapping("Invoice", "totalAmount", column_type="decimal", precision=19, scale=4)

        assert FloatForMoney().analyze_mappings([mapping]).is_empty()


class TestDecimalPrecision:

    @pytest.mark.parametrize("field, precision, scale, issue_type, severity", [
        ("price", None, None, "decimal_missing_precision", Severity.WARNING),
        ("price", 8, 2, "decimal_insufficient_precision", Severity.WARNING),
        ("price", 19, 3, "decimal_unusual_scale", Severity.INFO),
        ("taxRate", 3, 2, "decimal_insufficient_precision", Severity.WARNING),
        ("quantity", 40, 2, "decimal_excessive_precision", Severity.INFO),
    ])
    def test_findings(self, field, precision, scale, issue_type, severity):
        mapping = make_mapping("Product", field, column_type="decimal", precision=precision, scale=scale)

        issue = DecimalPrecision().analyze_mappings([mapping]).first()

        assert issue.type == issue_type
        assert issue.severity == severity
        assert issue.category == IssueCategory.CONFIGURATION

    @pytest.mark.parametrize("field, precision, scale", [
        ("price", 19, 4),
        ("price", 10, 2),
        ("discountPercent", 5, 2),
        ("quantity", 10, 0),
    ])
    def test_sensible_precision(self, field, precision, scale):
        mapping = make_mapping("Product", field, column_type="decimal", precision=precision, scale=scale)

        assert DecimalPrecision().analyze_mappings([mapping]).is_empty()

    def test_missing_precision_context(self):
        mapping = make_mapping("Product", "price", column_type="decimal")

        issue = DecimalPrecision().analyze_mappings([mapping]).first()

        assert issue.suggestion.context["precision"] == "default"
        assert issue.suggestion.context["recommended_precision"] == 19
        assert issue.suggestion.context["recommended_scale"] == 4

    def test_other_column_types_are_ignored(self):
        mapping = make_mapping("Product", "price", column_type="integer")

        assert DecimalPrecision().analyze_mappings([mapping]).is_empty()
