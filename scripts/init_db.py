"""Create the key-value table and store the default KPI targets if none exist."""

from config.settings import settings
from lead_insight.memory.target_store import SqlTargetStore


def init() -> None:
    store = SqlTargetStore.from_url(settings.database_url, settings.kpi_targets_key)
    targets = store.load()
    store.save(targets)
    print(f"[init_db] Targets ready under '{settings.kpi_targets_key}': {targets.model_dump(by_alias=True)}")


if __name__ == "__main__":
    init()
