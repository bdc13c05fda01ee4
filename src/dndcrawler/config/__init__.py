from .config import CatalogConfig, Config, CrawlerConfig, MonitoringConfig, load_config

__all__ = ["CatalogConfig", "Config", "CrawlerConfig", "MonitoringConfig", "load_config"]
