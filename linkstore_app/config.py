from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """
    
    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # Application
    app_name: str = "Link Store"
    app_version: str = "1.0.0"
    
    # Key-value store
    store_backend: str = "redis"  # Options: "redis", "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 2.0
    atomic_batches: bool = True  # Send rename batches as MULTI/EXEC
    
    # Primary (service-owned) short-link domain
    primary_domain: str = "dub.sh"
    reserved_keys: List[str] = [
        "about",
        "api",
        "app",
        "blog",
        "dashboard",
        "docs",
        "favicon.ico",
        "help",
        "login",
        "logout",
        "metatags",
        "placeholder",
        "pricing",
        "privacy",
        "robots.txt",
        "settings",
        "signup",
        "sitemap.xml",
        "static",
        "stats",
        "terms",
    ]
    
    # Random key generation
    key_length: int = 7
    key_max_attempts: int = 10  # Attempts per length before widening
    key_widened_length: int = 10
    
    # Usage cache
    usage_cache_ttl: int = 3600  # Seconds (1 hour)
    
    # Collaborators
    deployment: str = "local"  # Options: "edge", "local"
    title_resolver: str = "http"  # Options: "http", "null"
    title_fetch_timeout: float = 2.0
    title_max_content_length: int = 1024 * 1024  # Bytes read from a page at most
    
    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
