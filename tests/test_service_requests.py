from __future__ import annotations

from datetime import date

import pytest

from star_limpiezas.models.enums import ServiceStatus, Shift
from star_limpiezas.models.service_models import ServiceFilters, ServiceInput
from star_limpiezas.services.service_requests import ServiceRequestService


@pytest.fixture
def requests_(services) -> ServiceRequestService:
    return services["service_request_service"]


@pytest.fixture
def seeded(fake):
    fake.seed(
        "user_services",
        {"id": 1, "user_id": "u1", "service_name": "Limpieza Residencial",
         "assigned_date": "2024-05-10", "status": "pending", "shift": "morning"},
        {"id": 2, "user_id": "u2", "service_name": "Limpieza de Oficinas",
         "assigned_date": "2024-05-20", "status": "confirmed", "shift": "afternoon"},
        {"id": 3, "user_id": "u1", "service_name": "Limpieza Profunda",
         "assigned_date": "2024-06-01", "status": "completed"},
    )
    fake.seed("location", {"id": 7, "location": "Madrid"}, {"id": 8, "location": "Bilbao"})
    fake.seed("service_available", {"id": 1, "name": "Limpieza Residencial"})
    return fake


# --- listing ---

def test_admin_sees_all_newest_first(requests_, seeded, admin):
    result = requests_.get_services(admin)
    assert [service.id for service in result.data] == [3, 2, 1]


def test_client_sees_only_own_services(requests_, seeded, client_user):
    result = requests_.get_services(client_user, ServiceFilters(user_id="u2"))
    assert {service.user_id for service in result.data} == {"u1"}


def test_admin_filters(requests_, seeded, admin):
    filters = ServiceFilters(
        status="pending",
        service_type="residencial",
        date_from=date(2024, 5, 1),
        date_to=date(2024, 5, 10),
    )
    assert [s.id for s in requests_.get_services(admin, filters).data] == [1]
    assert [s.id for s in requests_.get_services(admin, ServiceFilters(user_id="u2")).data] == [2]


def test_anonymous_listing_denied(requests_, seeded):
    assert requests_.get_services(None).status_code == 403


# --- create ---

def test_client_creates_pending_service_for_self(requests_, fake, client_user):
    data = ServiceInput(
        service_name="Limpieza de Ventanas",
        assigned_date="2024-07-01",
        user_id="someone-else",
        shift=Shift.AFTERNOON,
        hours=4,
    )

    result = requests_.create_service(data, client_user)

    assert result.success
    assert result.status_code == 201
    (row,) = fake.tables["user_services"]
    assert row["user_id"] == "u1"
    assert row["status"] == "pending"
    assert row["shift"] == "afternoon"
    assert row["hours"] == "4"
    assert result.data.status == ServiceStatus.PENDING


def test_admin_creates_service_for_client(requests_, fake, admin):
    data = ServiceInput(service_name="Limpieza Comercial", assigned_date="2024-07-01", user_id="u2")
    assert requests_.create_service(data, admin).success
    assert fake.tables["user_services"][0]["user_id"] == "u2"


def test_create_validates_required_fields(requests_, fake, client_user):
    result = requests_.create_service(ServiceInput(service_name=" "), client_user)

    assert result.status_code == 400
    assert "El nombre del servicio es obligatorio" in result.error
    assert "La fecha asignada es obligatoria" in result.error
    assert "user_services" not in fake.tables


def test_create_requires_actor(requests_):
    data = ServiceInput(service_name="Limpieza", assigned_date="2024-07-01")
    assert requests_.create_service(data, None).status_code == 403


# --- status transitions ---

@pytest.mark.parametrize("status", ["confirmed", "cancelled", "completed", "pending"])
def test_client_cannot_change_status(requests_, seeded, client_user, status):
    assert requests_.update_service_status(1, status, client_user).status_code == 403


def test_admin_confirms_service(requests_, seeded, admin, log_stream):
    result = requests_.update_service_status(1, "confirmed", admin)

    assert result.success
    assert result.data.status == ServiceStatus.CONFIRMED
    assert seeded.tables["user_services"][0]["status"] == "confirmed"
    assert "STATUS_CONFIRMED" in log_stream.getvalue()


def test_invalid_status(requests_, seeded, admin):
    assert requests_.update_service_status(1, "archived", admin).status_code == 400


def test_status_of_missing_service(requests_, seeded, admin):
    assert requests_.update_service_status(99, "confirmed", admin).status_code == 404


# --- edit / delete ---

def test_update_service_only_sends_given_fields(requests_, seeded, admin):
    result = requests_.update_service(1, ServiceInput(notes="Traer escalera"), admin)

    assert result.success
    row = seeded.tables["user_services"][0]
    assert row["notes"] == "Traer escalera"
    assert row["shift"] == "morning"


def test_update_service_denied_for_clients(requests_, seeded, client_user):
    assert requests_.update_service(1, ServiceInput(notes="x"), client_user).status_code == 403


def test_update_service_without_changes(requests_, seeded, admin):
    assert requests_.update_service(1, ServiceInput(), admin).status_code == 400


def test_delete_service(requests_, seeded, admin):
    assert requests_.delete_service(2, admin).success
    assert [row["id"] for row in seeded.tables["user_services"]] == [1, 3]


def test_delete_service_denied_for_clients(requests_, seeded, client_user):
    assert requests_.delete_service(2, client_user).status_code == 403
    assert len(seeded.tables["user_services"]) == 3


# --- lookups ---

def test_available_services_and_locations(requests_, seeded):
    assert [s.name for s in requests_.get_available_services().data] == ["Limpieza Residencial"]
    assert [loc.location for loc in requests_.get_locations().data] == ["Bilbao", "Madrid"]


def test_backend_error(requests_, fake, admin):
    fake.errors["user_services"] = Exception("timeout")
    assert requests_.get_services(admin).status_code == 500
