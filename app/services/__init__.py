# Services module
from app.services.order_store import OrderStore, SQLAlchemyOrderStore
from app.services.rest_order_store import RestOrderStore
from app.services.evidence_store import EvidenceStore, SQLAlchemyEvidenceStore
from app.services.closure_motive_catalog import ClosureMotiveCatalog

__all__ = [
    "OrderStore",
    "SQLAlchemyOrderStore",
    "RestOrderStore",
    "EvidenceStore",
    "SQLAlchemyEvidenceStore",
    "ClosureMotiveCatalog",
]
