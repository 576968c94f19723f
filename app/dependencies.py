from app.config import settings
from app.database import get_db_client
from app.services.catalog import CatalogService
from app.services.hold_manager import HoldManager
from app.services.queries import QueryFacade
from app.services.settlement import SettlementEngine
from app.services.sweeper import ExpirySweeper
from app.store.base import InventoryStore
from app.store.dynamodb import DynamoDBInventoryStore
from app.store.memory import InMemoryInventoryStore


def build_store() -> InventoryStore:
    if settings.store_backend == "dynamodb":
        return DynamoDBInventoryStore(get_db_client())
    return InMemoryInventoryStore()


# Shared instances used by the routers
store = build_store()
hold_manager = HoldManager(
    store,
    hold_duration_seconds=settings.hold_duration_seconds,
    max_seats_per_hold=settings.max_seats_per_hold,
    holder_policy=settings.holder_hold_policy,
)
settlement_engine = SettlementEngine(store, hold_manager, service_fee=settings.service_fee)
expiry_sweeper = ExpirySweeper(store, hold_manager, interval_seconds=settings.sweep_interval_seconds)
query_facade = QueryFacade(store)
catalog_service = CatalogService(store)
