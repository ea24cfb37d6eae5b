from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "WMS-STOCKFLOW"
    DATABASE_URL: str = "sqlite+pysqlite:///./wms.db"
    LOG_LEVEL: str = "INFO"
    DEFAULT_WAREHOUSE_NAME: str = "Main Warehouse"
    DEFAULT_LOCATION_FLOOR: str = "1"
    DEFAULT_LOCATION_ZONE: str = "A"
    METRICS_ENABLED: bool = True
    BARCODE_SUFFIX_RANDOM_LENGTH: int = 4
    BARCODE_REGISTRY_LENGTH: int = 12
    STOCK_IN_MAX_BOXES_PER_BATCH: int = 500
    LIST_MAX_PAGE_SIZE: int = 500


settings = Settings()
