from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Wikifier (entity-linking classifier)
    wikifier_user_key: str = ""
    wikifier_base_url: str = "https://www.wikifier.org/annotate-article"
    wikifier_lang: str = "auto"  # auto | en | de | ...
    wikifier_page_rank_threshold: float = 0.5
    wikifier_apply_threshold: bool = True
    wikifier_top_df_values_to_ignore: int = 100
    wikifier_words_to_ignore: int = 200
    wikifier_timeout_seconds: float = 20.0
    reference_base_url: str = "https://en.wikipedia.org/wiki/"

    # Ranking / cache
    annotation_top_n: int = 5
    annotation_cache_max_entries: int = 1024  # 0 = unbounded
    annotation_cache_ttl_seconds: int = 0  # 0 = never expires
    annotation_cache_persist: bool = False
    annotation_cache_dir: str = ".cache/annotations"

    # Inbound API
    annotations_api_token: str = ""  # optional bearer token for POST /api/annotations

    # Chat persistence
    save_chat_history: bool = True
    chat_store_dir: str = ".cache/chats"

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
