from filedesk.aggregation import record_stats, summarize_period, unique_values
from filedesk.listing import ASC, DESC, filter_by_status, normalize_sort, transform

RECORDS = [
    {"department": "IT", "created_at": 30, "subject": "Server quote", "file_name": "quote.pdf"},
    {"department": "HR", "created_at": 10, "subject": "Leave policy", "file_name": "policy.docx"},
    {"department": "IT", "created_at": 20, "subject": "Laptop request", "file_name": "laptops.xlsx"},
]


def test_category_filter_then_ascending_sort():
    result = transform(RECORDS, "", "IT", "created_at", ASC)
    assert [r["created_at"] for r in result] == [20, 30]


def test_empty_search_keeps_everything():
    result = transform(RECORDS, "", "", "created_at", DESC)
    assert [r["created_at"] for r in result] == [30, 20, 10]


def test_search_is_case_insensitive_over_any_field():
    result = transform(RECORDS, "LAPTOP", "", "created_at", DESC, search_fields=("subject", "file_name"))
    assert [r["created_at"] for r in result] == [20]
    result = transform(RECORDS, ".pdf", "", "created_at", DESC, search_fields=("subject", "file_name"))
    assert [r["created_at"] for r in result] == [30]


def test_text_sort_and_missing_values():
    records = [{"file_name": "b.pdf"}, {"file_name": None}, {"file_name": "A.pdf"}]
    result = transform(records, "", "", "file_name", ASC, search_fields=("file_name",))
    assert [r["file_name"] for r in result] == [None, "A.pdf", "b.pdf"]


def test_numeric_sort_treats_junk_as_zero():
    records = [{"file_size": "x"}, {"file_size": 5}, {"file_size": 2}]
    result = transform(records, "", "", "file_size", ASC)
    assert [r["file_size"] for r in result] == ["x", 2, 5]


def test_transform_does_not_mutate_input():
    records = list(RECORDS)
    transform(records, "", "", "created_at", ASC)
    assert records == RECORDS


def test_status_filter():
    records = [{"status": "Pending"}, {"status": ""}, {"status": "Completed"}, {"status": "On Hold"}]
    assert len(filter_by_status(records, "pending")) == 2
    assert len(filter_by_status(records, "completed")) == 1
    assert len(filter_by_status(records, "all")) == 4


def test_normalize_sort_falls_back_to_defaults():
    assert normalize_sort("bogus", "sideways") == ("created_at", "desc")
    assert normalize_sort("file_name", "asc") == ("file_name", "asc")


def test_monthly_aggregation_counts_malformed_distances():
    entries = [
        {"date": "2024-03-01", "distance": "10"},
        {"date": "2024-03-12", "distance": "20.5"},
        {"date": "2024-03-30", "distance": "bad"},
        {"date": "2024-04-01", "distance": "99"},
    ]
    summary = summarize_period(entries, "2024-03")
    assert summary.total_distance == 30.5
    assert summary.count == 3
    assert [e["date"] for e in summary.entries] == ["2024-03-01", "2024-03-12", "2024-03-30"]


def test_aggregation_on_another_field():
    entries = [{"date": "2024-03-01", "kilometers": "50.0"}, {"date": "2024-03-02", "kilometers": "12.5"}]
    assert summarize_period(entries, "2024-03", amount_field="kilometers").total_distance == 62.5


def test_record_stats_and_unique_values():
    records = [{"status": "Pending", "department": "IT"}, {"status": None, "department": "HR"},
               {"status": "Completed", "department": "IT"}]
    assert record_stats(records) == {"total": 3, "pending": 2, "completed": 1}
    assert unique_values(records, "department") == ["HR", "IT"]


def test_ties_keep_source_order_in_both_directions():
    records = [
        {"department": "IT", "subject": "first"},
        {"department": "HR", "subject": "second"},
        {"department": "IT", "subject": "third"},
        {"department": "HR", "subject": "fourth"},
    ]
    ascending = transform(records, "", "", "department", ASC)
    assert [r["subject"] for r in ascending] == ["second", "fourth", "first", "third"]
    descending = transform(records, "", "", "department", DESC)
    assert [r["subject"] for r in descending] == ["first", "third", "second", "fourth"]
