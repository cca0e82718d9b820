from __future__ import annotations

import io
from datetime import date

import pytest
from openpyxl import load_workbook

from star_limpiezas.models.service_models import ServiceFilters, ServiceRecord
from star_limpiezas.services.reports import (
    SERVICE_HEADERS,
    SERVICES_SHEET,
    SUMMARY_SHEET,
    apply_filters,
    calculate_stats,
)


@pytest.fixture
def catalog(services):
    return services["catalog_service"]


@pytest.fixture
def reports(services):
    return services["report_service"]


@pytest.fixture
def records() -> list[ServiceRecord]:
    return [
        ServiceRecord(id=1, user_id="u1", service_name="Limpieza Residencial",
                      assigned_date="2024-05-10", status="pending", shift="morning",
                      location={"id": 7, "location": "Madrid"},
                      user={"id": "u1", "name": "Ana"}),
        ServiceRecord(id=2, user_id="u2", service_name="Limpieza de Oficinas",
                      assigned_date="2024-05-20T09:00:00", status="confirmed"),
        ServiceRecord(id=3, user_id="u1", service_name="Limpieza Profunda",
                      assigned_date="2024-06-01", status="completed"),
        ServiceRecord(id=4, user_id="u2", service_name="Limpieza Residencial",
                      assigned_date=None, status="cancelled"),
    ]


# --- locations ---

def test_create_location(catalog, fake, admin, log_stream):
    result = catalog.create_location("  Valencia ", admin)

    assert result.status_code == 201
    assert fake.tables["location"][0]["location"] == "Valencia"
    assert "Location" in log_stream.getvalue()


def test_create_location_requires_name(catalog, admin):
    assert catalog.create_location("   ", admin).status_code == 400


def test_create_location_denied_for_clients(catalog, fake, client_user):
    assert catalog.create_location("Valencia", client_user).status_code == 403
    assert "location" not in fake.tables


def test_get_locations_sorted(catalog, fake):
    fake.seed("location", {"id": 1, "location": "Sevilla"}, {"id": 2, "location": "Bilbao"})
    assert [loc.location for loc in catalog.get_locations().data] == ["Bilbao", "Sevilla"]


# --- available dates ---

def test_create_available_date(catalog, fake, admin):
    result = catalog.create_available_date(
        "Limpieza Profunda", date(2024, 7, 1), date(2024, 7, 1), admin,
    )

    assert result.success
    row = fake.tables["available_dates"][0]
    assert row["start_date"] == "2024-07-01"
    assert row["end_date"] == "2024-07-01"


def test_available_date_range_must_be_ordered(catalog, fake, admin):
    result = catalog.create_available_date(
        "Limpieza Profunda", date(2024, 7, 2), date(2024, 7, 1), admin,
    )
    assert result.status_code == 400
    assert "available_dates" not in fake.tables


def test_available_dates_for_one_service(catalog, fake):
    fake.seed(
        "available_dates",
        {"id": 1, "service": "A", "start_date": "2024-08-01", "end_date": "2024-08-02"},
        {"id": 2, "service": "B", "start_date": "2024-07-01", "end_date": "2024-07-02"},
        {"id": 3, "service": "A", "start_date": "2024-06-01", "end_date": "2024-06-02"},
    )

    assert [d.id for d in catalog.get_available_dates().data] == [3, 2, 1]
    assert [d.id for d in catalog.get_available_dates("A").data] == [3, 1]


# --- dashboard ---

def test_dashboard_stats(catalog, fake):
    fake.seed(
        "user_services",
        {"id": 1, "status": "pending"},
        {"id": 2, "status": "pending"},
        {"id": 3, "status": "completed"},
    )
    fake.seed("users", {"id": "u1"}, {"id": "u2"})
    fake.seed("location", {"id": 1, "location": "Madrid"})

    stats = catalog.get_dashboard_stats().data

    assert stats.total_services == 3
    assert stats.total_users == 2
    assert stats.total_locations == 1
    assert stats.services_by_status == {"pending": 2, "completed": 1}


def test_dashboard_stats_backend_error(catalog, fake):
    fake.errors["users"] = Exception("boom")
    assert catalog.get_dashboard_stats().status_code == 500


# --- filtering and totals ---

def test_apply_filters_without_filters(records):
    assert apply_filters(records, None) == records


def test_apply_filters_status_and_type(records):
    filters = ServiceFilters(status="pending", service_type="RESIDENCIAL")
    assert [r.id for r in apply_filters(records, filters)] == [1]


def test_apply_filters_date_range_is_inclusive(records):
    filters = ServiceFilters(date_from=date(2024, 5, 10), date_to=date(2024, 5, 20))
    # Services without a date never match a date range.
    assert [r.id for r in apply_filters(records, filters)] == [1, 2]


def test_apply_filters_user_only_for_admins(records, admin, client_user):
    filters = ServiceFilters(user_id="u2")

    assert [r.id for r in apply_filters(records, filters, admin)] == [2, 4]
    assert len(apply_filters(records, filters, client_user)) == 4
    assert len(apply_filters(records, filters)) == 4


def test_calculate_stats(records):
    stats = calculate_stats(records)
    assert stats.model_dump() == {
        "total": 4, "pending": 1, "confirmed": 1, "cancelled": 1, "completed": 1,
    }


def test_calculate_stats_empty():
    assert calculate_stats([]).total == 0


# --- load_report ---

def test_load_report_for_client(reports, fake, client_user):
    fake.seed(
        "user_services",
        {"id": 1, "user_id": "u1", "service_name": "A", "assigned_date": "2024-05-10", "status": "pending"},
        {"id": 2, "user_id": "u2", "service_name": "B", "assigned_date": "2024-05-11", "status": "pending"},
        {"id": 3, "user_id": "u1", "service_name": "C", "assigned_date": "2024-05-12", "status": "completed"},
    )

    result = reports.load_report(client_user)

    rows, stats = result.data
    assert [row.id for row in rows] == [3, 1]
    assert stats.total == 2
    assert stats.completed == 1


def test_load_report_propagates_failure(reports):
    result = reports.load_report(None)
    assert result.success is False
    assert result.status_code == 403


# --- export ---

def test_export_to_excel(reports, records, tmp_path, log_stream):
    target = tmp_path / "reporte.xlsx"

    result = reports.export_to_excel(records, target)

    assert result.data == 4
    workbook = load_workbook(target)
    assert workbook.sheetnames == [SERVICES_SHEET, SUMMARY_SHEET]

    sheet = workbook[SERVICES_SHEET]
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0] == SERVICE_HEADERS
    assert sheet["A1"].font.bold
    first = dict(zip(SERVICE_HEADERS, rows[1]))
    assert first["Cliente"] == "Ana"
    assert first["Fecha asignada"] == "10/05/2024"
    assert first["Turno"] == "Mañana"
    assert first["Ubicación"] == "Madrid"
    assert first["Estado"] == "Pendiente"

    summary = {metric: value for metric, value in workbook[SUMMARY_SHEET].iter_rows(min_row=2, values_only=True)}
    assert summary["Total de servicios"] == 4
    assert summary["Completado"] == 1
    assert "Exported 4 services" in log_stream.getvalue()


def test_export_to_stream(reports, records):
    buffer = io.BytesIO()
    assert reports.export_to_excel(records[:1], buffer).success
    buffer.seek(0)
    assert load_workbook(buffer)[SERVICES_SHEET].max_row == 2


def test_export_to_missing_directory(reports, records, tmp_path):
    result = reports.export_to_excel(records, tmp_path / "missing" / "reporte.xlsx")
    assert result.status_code == 500
