"""Application settings loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Source spreadsheet (public CSV export)
    spreadsheet_id: str = "1u0G7TMRniwvqh3ReLCxi68qlrbeHNkJbGdXL_z93JP4"
    sheet_gid: str = "0"
    csv_export_url: str = ""  # "" = built from spreadsheet_id / sheet_gid
    fetch_timeout_seconds: float = 30.0

    # Target store
    database_url: str = "sqlite:///lead_insight.db"
    kpi_targets_key: str = "crm_kpi_targets"

    # Progress-tracking columns: half-open slice of the header list
    milestone_window_start: int = 35
    milestone_window_end: int = 77

    log_level: str = "INFO"

    @property
    def export_url(self) -> str:
        if self.csv_export_url:
            return self.csv_export_url
        return (
            f"https://docs.google.com/spreadsheets/d/{self.spreadsheet_id}"
            f"/export?format=csv&gid={self.sheet_gid}"
        )


settings = Settings()
