"""Repository modules (thin query helpers over the ORM models)."""
