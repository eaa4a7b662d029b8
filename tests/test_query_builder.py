"""Tests for query-builder mistake detectors."""

from querydoctor.analyzer.query_builder import QueryBuilderPatternDetector


class TestIncorrectNullComparison:

    def test_equals_null_is_detected(self):
        detector = QueryBuilderPatternDetector()

        match = detector.detect_incorrect_null_comparison("SELECT * FROM users WHERE deleted_at = NULL")

        assert match.detected
        assert match.locations == ("deleted_at = NULL",)

    def test_is_null_is_fine(self):
        detector = QueryBuilderPatternDetector()

        match = detector.detect_incorrect_null_comparison("SELECT * FROM users WHERE deleted_at IS NULL")

        assert not match.detected


class TestEmptyIn:

    def test_empty_in_clause(self):
        detector = QueryBuilderPatternDetector()

        assert detector.has_empty_in_clause("SELECT * FROM users WHERE id IN ()")
        assert detector.has_empty_in_clause("SELECT * FROM users WHERE id IN (  )")

    def test_empty_in_inside_string_is_ignored(self):
        detector = QueryBuilderPatternDetector()

        assert not detector.has_empty_in_clause("SELECT * FROM notes WHERE body = 'IN ()'")


class TestUnescapedLike:

    def test_wildcard_literal(self):
        detector = QueryBuilderPatternDetector()

        assert detector.has_unescaped_like("SELECT * FROM users WHERE name LIKE '%foo'")

    def test_bound_pattern(self):
        detector = QueryBuilderPatternDetector()

        assert not detector.has_unescaped_like("SELECT * FROM users WHERE name LIKE ?")


class TestParameters:

    def test_placeholders_in_order_without_casts(self):
        detector = QueryBuilderPatternDetector()
        sql = "SELECT * FROM t WHERE a = :a AND b = :b AND c = :a AND d::text = ':e'"

        assert detector.extract_parameter_placeholders(sql) == ["a", "b"]

    def test_missing_parameters_from_mapping(self):
        detector = QueryBuilderPatternDetector()

        match = detector.detect_missing_parameters("SELECT * FROM t WHERE a = :a AND b = :b", {"a": 1})

        assert match.detected
        assert match.locations == ("b",)

    def test_all_parameters_bound_by_name(self):
        detector = QueryBuilderPatternDetector()

        match = detector.detect_missing_parameters("SELECT * FROM t WHERE a = :a AND b = :b", ["a", "b"])

        assert not match.detected

    def test_no_placeholders(self):
        detector = QueryBuilderPatternDetector()

        assert not detector.detect_missing_parameters("SELECT * FROM t WHERE a = ?", {}).detected


class TestLiteralsInConditions:

    def test_quoted_literals(self):
        detector = QueryBuilderPatternDetector()

        found = detector.detect_quoted_literals_in_conditions(
            "SELECT * FROM users WHERE email = 'x@y.z' AND name = 'bob'"
        )

        assert found == ["WHERE with single quotes", "AND with single quotes"]

    def test_potential_injection(self):
        detector = QueryBuilderPatternDetector()

        match = detector.detect_potential_sql_injection("SELECT * FROM users WHERE email = 'x@y.z'")

        assert match.detected
        assert match.locations == ("email = <literal>",)

    def test_fix_suggestion_fallback(self):
        assert QueryBuilderPatternDetector.get_fix_suggestion("nope") == "Review the query and fix the issue"
