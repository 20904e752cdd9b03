from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # 籌碼（demo chip）與下注限制
    start_balance: int = 10000
    min_bet: int = 10
    max_bet: int = 500000
    balance_cap: int = 10_000_000_000

    # 結算模式：ledger（數字餘額）或 reward_pool（文字獎勵池）
    settlement_mode: str = "ledger"

    # 房間
    default_room: str = "demo"
    room_id_max_length: int = 32

    # 獎勵池
    reward_text_max_length: int = 64
    reward_list_max_items: int = 50
    reward_placeholder: str = "(no reward)"

    # 服務
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 8080

    class Config:
        env_file = ".env"
        env_prefix = "GAMEROOM_"


@lru_cache()
def get_settings():
    return Settings()
