"""
Tests for the client registry.

Run with: uv run pytest tests/test_clients.py -v
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from clients import ClientRegistry, validate_client
from errors import NotFound, ValidationError
from models import ClientType


class TestValidateClient:
    """Tests for client field rules."""

    def test_company_requires_company_name(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_client({"type": "company", "full_name": "Contact Person", "company_name": ""})
        assert exc_info.value.field == "company_name"

    def test_whitespace_company_name_is_empty(self):
        with pytest.raises(ValidationError):
            validate_client({"type": "company", "company_name": "   "})

    def test_individual_requires_full_name(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_client({"type": "individual"})
        assert exc_info.value.field == "full_name"

    def test_individual_never_keeps_company_name(self):
        row = validate_client({"type": "individual", "full_name": "Ana", "company_name": "Acme"})
        assert row["company_name"] is None

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_client({"type": "partnership", "full_name": "Ana"})
        assert exc_info.value.field == "type"

    def test_bad_email(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_client({"type": "individual", "full_name": "Ana", "email": "not-an-address"})
        assert exc_info.value.field == "email"


class TestClientRegistry:
    """Tests for firm-scoped client records."""

    def test_create_company(self, client_registry, firm_a):
        client = client_registry.create(
            type="company", company_name="Acme SA de CV", full_name="Pedro Contacto",
        )

        assert client.type is ClientType.COMPANY
        assert client.display_name == "Acme SA de CV"
        assert client.firm_id == firm_a.firm_id
        assert client.created_by == "user-a"

    def test_update_validates_merged_record(self, client_registry, sample_client):
        with pytest.raises(ValidationError):
            client_registry.update(sample_client.id, type="company")

        # Nothing was written
        assert client_registry.get(sample_client.id).type is ClientType.INDIVIDUAL

    def test_update_to_company(self, client_registry, sample_client):
        client = client_registry.update(sample_client.id, type="company", company_name="Perez y Asociados")

        assert client.display_name == "Perez y Asociados"
        assert client.full_name == "Juan Perez"

    def test_update_unknown_field(self, client_registry, sample_client):
        with pytest.raises(ValidationError):
            client_registry.update(sample_client.id, firm_id="elsewhere")

    def test_list_filters(self, client_registry, sample_client):
        client_registry.create(type="company", company_name="Acme SA de CV")

        assert len(client_registry.list()) == 2
        assert [c.display_name for c in client_registry.list(client_type="company")] == ["Acme SA de CV"]
        assert [c.id for c in client_registry.list(search="juan@")] == [sample_client.id]
        assert client_registry.list(search="nobody") == []

    def test_case_count(self, client_registry, sample_case, sample_client):
        client, case_count = client_registry.get_with_case_count(sample_client.id)
        assert client.id == sample_client.id
        assert case_count == 1

    def test_delete_refused_while_cases_exist(self, client_registry, sample_case, sample_client):
        with pytest.raises(ValidationError):
            client_registry.delete(sample_client.id)
        assert client_registry.get(sample_client.id)

    def test_delete_refused_while_invoiced(self, client_registry, billing_engine, sample_client):
        billing_engine.create_invoice(
            sample_client.id, [{"description": "Consulta", "hours": "1", "rate": "100"}],
        )
        with pytest.raises(ValidationError) as exc_info:
            client_registry.delete(sample_client.id)
        assert "1 invoice(s)" in exc_info.value.reason
        assert client_registry.get(sample_client.id)

    def test_delete_refused_while_documents_exist(self, client_registry, document_registry, sample_client):
        document_registry.create("Poder notarial.pdf", client_id=sample_client.id)
        with pytest.raises(ValidationError) as exc_info:
            client_registry.delete(sample_client.id)
        assert "1 document(s)" in exc_info.value.reason

    def test_delete_refused_while_events_exist(self, client_registry, calendar, sample_client):
        calendar.create(
            "Cita inicial", "2026-03-15T10:00:00+00:00", "2026-03-15T11:00:00+00:00",
            client_id=sample_client.id,
        )
        with pytest.raises(ValidationError) as exc_info:
            client_registry.delete(sample_client.id)
        assert "1 calendar event(s)" in exc_info.value.reason

    def test_delete(self, client_registry, sample_client):
        client_registry.delete(sample_client.id)
        with pytest.raises(NotFound):
            client_registry.get(sample_client.id)

    def test_other_firm_cannot_see_client(self, store, firm_b, sample_client):
        other = ClientRegistry(store, firm_b)

        with pytest.raises(NotFound):
            other.get(sample_client.id)
        with pytest.raises(NotFound):
            other.update(sample_client.id, notes="mine now")
        assert other.list() == []
