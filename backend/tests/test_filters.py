"""Tests for filter specification parsing and transport."""

import json

import pytest

from crm.errors import ValidationFailed
from crm.schemas.filters import parse_campaign_filters, parse_lead_filters


def fields_of(exc: ValidationFailed) -> set[str]:
    return {d["field"] for d in exc.details}


class TestLeadFilters:
    def test_defaults(self):
        filters = parse_lead_filters({}, {})
        assert filters.page == 1
        assert filters.limit == 10
        assert filters.sort_by == "createdAt"
        assert filters.sort_order == "desc"
        assert filters.search is None
        assert filters.offset == 0

    def test_query_params(self):
        filters = parse_lead_filters(
            {"search": "acme", "status": "contacted", "sortBy": "email", "sortOrder": "asc", "page": "3", "limit": "25"},
            {},
        )
        assert filters.search == "acme"
        assert filters.status == "contacted"
        assert filters.sort_by == "email"
        assert filters.sort_order == "asc"
        assert filters.offset == 50

    def test_headers_override_query_params(self):
        headers = {
            "x-filters": json.dumps({"status": "converted", "search": "beta"}),
            "x-page": "2",
            "x-page-size": "5",
        }
        filters = parse_lead_filters({"status": "pending", "page": "9"}, headers)
        assert filters.status == "converted"
        assert filters.search == "beta"
        assert filters.page == 2
        assert filters.limit == 5

    def test_page_size_is_accepted_as_limit(self):
        filters = parse_lead_filters({"pageSize": "15"}, {})
        assert filters.limit == 15

    def test_empty_strings_are_unset(self):
        filters = parse_lead_filters({"search": "   ", "status": "", "campaignId": ""}, {})
        assert filters.search is None
        assert filters.status is None
        assert filters.campaign_id is None

    def test_none_campaign_means_unassigned(self):
        filters = parse_lead_filters({"campaignId": "none"}, {})
        assert filters.unassigned_only

    @pytest.mark.parametrize("limit", ["0", "101", "-3"])
    def test_limit_out_of_range_is_rejected(self, limit):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({"limit": limit}, {})
        assert "limit" in fields_of(exc.value)

    def test_page_below_one_is_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({"page": "0"}, {})
        assert "page" in fields_of(exc.value)

    def test_unknown_sort_field_is_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({"sortBy": "password"}, {})
        assert "sortBy" in fields_of(exc.value)

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({"status": "deleted"}, {})
        assert "status" in fields_of(exc.value)

    def test_malformed_filters_header(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({}, {"x-filters": "{not json"})
        assert fields_of(exc.value) == {"X-Filters"}

    def test_filters_header_must_be_an_object(self):
        with pytest.raises(ValidationFailed):
            parse_lead_filters({}, {"x-filters": "[1, 2]"})

    def test_non_integer_page_header(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_lead_filters({}, {"x-page": "two"})
        assert "page" in fields_of(exc.value)


class TestCampaignFilters:
    def test_defaults(self):
        filters = parse_campaign_filters({}, {})
        assert filters.page_size == 20
        assert filters.sort_by == "createdAt"
        assert filters.status is None

    def test_page_size_header(self):
        filters = parse_campaign_filters({}, {"x-page": "4", "x-page-size": "10"})
        assert filters.page == 4
        assert filters.page_size == 10
        assert filters.offset == 30

    def test_deleted_status_can_be_requested(self):
        filters = parse_campaign_filters({"status": "deleted"}, {})
        assert filters.status == "deleted"

    def test_lead_only_sort_field_is_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_campaign_filters({"sortBy": "email"}, {})
        assert "sortBy" in fields_of(exc.value)

    def test_page_size_over_max_is_rejected(self):
        with pytest.raises(ValidationFailed) as exc:
            parse_campaign_filters({"pageSize": "500"}, {})
        assert "pageSize" in fields_of(exc.value)
