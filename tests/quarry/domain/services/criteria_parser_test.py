"""Tests for the criteria parser."""

import pytest

from quarry.domain.entities import Criteria, PaginationConfig, PaginationConfigBuilder
from quarry.domain.errors import ValidationError
from quarry.domain.services.criteria_parser import CriteriaParser, parse_criteria


@pytest.fixture
def config() -> PaginationConfig:
    """Create the pagination config used throughout these tests."""
    return (
        PaginationConfigBuilder()
        .size(default=20, max=100)
        .sort(on=["name"], default="name")
        .filter(on=["status"])
        .search(on=["name"])
        .range(on=["created_at"])
        .build()
    )


@pytest.fixture
def parser() -> CriteriaParser:
    """Create a parser."""
    return CriteriaParser()


class TestDefaults:
    """Tests for parameters that are absent."""

    def test_empty_request_uses_defaults(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies an empty request yields the configured defaults."""
        criteria = parser.parse({}, config)

        assert criteria == Criteria(
            page=1, size=20, search_term=None, sort_by="name", request={}
        )

    def test_no_default_sort(self, parser: CriteriaParser) -> None:
        """Verifies sort_by is None without a request value or default."""
        criteria = parser.parse({}, PaginationConfig())

        assert criteria.sort_by is None

    def test_empty_search_term_is_none(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies an empty q is treated as absent."""
        assert parser.parse({"q": ""}, config).search_term is None

    @pytest.mark.parametrize("q", [["bob"], {"x": "bob"}, 5])
    def test_rejects_non_string_search_term(
        self, parser: CriteriaParser, config: PaginationConfig, q: object
    ) -> None:
        """Verifies q decoded as a list or mapping is a validation error."""
        with pytest.raises(ValidationError):
            parser.parse({"q": q}, config)


class TestPage:
    """Tests for page parsing."""

    def test_parses_numeric_page(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies a numeric page string is parsed."""
        assert parser.parse({"page": "3"}, config).page == 3

    @pytest.mark.parametrize("page", ["abc", "1.5", "", " 2", True])
    def test_rejects_non_numeric_page(
        self, parser: CriteriaParser, config: PaginationConfig, page: object
    ) -> None:
        """Verifies a non-numeric page is a validation error."""
        with pytest.raises(ValidationError):
            parser.parse({"page": page}, config)

    @pytest.mark.parametrize("page", ["0", "-1"])
    def test_rejects_page_below_one(
        self, parser: CriteriaParser, config: PaginationConfig, page: str
    ) -> None:
        """Verifies pages start at one."""
        with pytest.raises(ValidationError):
            parser.parse({"page": page}, config)

    @pytest.mark.parametrize(
        "page", ["99999999999999999999", "9" * 5000], ids=["overflow", "too-long"]
    )
    def test_rejects_page_with_unrepresentable_offset(
        self, parser: CriteriaParser, config: PaginationConfig, page: str
    ) -> None:
        """Verifies pages whose offset exceeds a 64-bit integer are rejected."""
        with pytest.raises(ValidationError):
            parser.parse({"page": page}, config)

    def test_large_page_without_size_is_kept(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies the offset bound only applies when an offset is used."""
        criteria = parser.parse({"page": "99999999999999999999", "size": "0"}, config)

        assert criteria.page == 99999999999999999999


class TestSize:
    """Tests for size parsing."""

    def test_parses_numeric_size(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies a numeric size string is parsed."""
        assert parser.parse({"size": "10"}, config).size == 10

    @pytest.mark.parametrize("size", ["101", "500", "1000000000"])
    def test_clamps_size_to_max(
        self, parser: CriteriaParser, config: PaginationConfig, size: str
    ) -> None:
        """Verifies sizes above the maximum are clamped."""
        assert parser.parse({"size": size}, config).size == 100

    @pytest.mark.parametrize(("size", "expected"), [("0", 0), ("-5", -5)])
    def test_keeps_sizes_below_one(
        self,
        parser: CriteriaParser,
        config: PaginationConfig,
        size: str,
        expected: int,
    ) -> None:
        """Verifies only the upper bound is clamped."""
        assert parser.parse({"size": size}, config).size == expected

    def test_rejects_non_numeric_size(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies a non-numeric size is a validation error."""
        with pytest.raises(ValidationError):
            parser.parse({"size": "ten"}, config)


class TestSortBy:
    """Tests for sort parsing."""

    def test_keeps_allowed_column(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies an allowed column is kept as given."""
        assert parser.parse({"sort_by": "name"}, config).sort_by == "name"

    def test_keeps_descending_marker(
        self, parser: CriteriaParser, config: PaginationConfig
    ) -> None:
        """Verifies the descending marker survives parsing."""
        assert parser.parse({"sort_by": "-name"}, config).sort_by == "-name"

    @pytest.mark.parametrize("sort_by", ["password", "-password", "", "--name"])
    def test_disallowed_column_fails_open(
        self, parser: CriteriaParser, config: PaginationConfig, sort_by: str
    ) -> None:
        """Verifies columns outside the allowed set are dropped, not rejected."""
        assert parser.parse({"sort_by": sort_by}, config).sort_by is None


def test_rejects_non_mapping_parameters(
    parser: CriteriaParser, config: PaginationConfig
) -> None:
    """Verifies parameters must be a mapping."""
    with pytest.raises(ValidationError):
        parser.parse(["page", "1"], config)  # type: ignore[arg-type]


def test_full_request(config: PaginationConfig) -> None:
    """Verifies a request using every parameter."""
    request = {
        "page": "2",
        "size": "10",
        "q": "bob",
        "status": ["active", "pending"],
        "sort_by": "-name",
        "created_at": {"after": "2024-01-01"},
    }

    criteria = parse_criteria(request, config)

    assert criteria.page == 2
    assert criteria.size == 10
    assert criteria.search_term == "bob"
    assert criteria.sort_by == "-name"
    assert criteria.request == request
