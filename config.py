"""Конфигурация приложения"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Настройки приложения"""

    # Telegram Bot
    BOT_TOKEN: str = ""

    # Database
    # Полный URL имеет приоритет над отдельными параметрами подключения
    DATABASE_URL: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = ""
    DB_PASSWORD: str = ""
    DB_NAME: str = ""
    DB_ECHO: bool = False

    # Auction Settings
    # Допустимые длительности аукциона (в днях)
    AUCTION_DURATIONS_DAYS: str = "1,3,7,14"

    # Scheduler
    # Как часто проверять истекшие аукционы (в секундах)
    SCHEDULER_INTERVAL_SECONDS: int = 60
    # Как часто рассылать напоминания о скором завершении (в минутах)
    REMINDER_INTERVAL_MINUTES: int = 60
    # За сколько часов до конца напоминать лидеру торгов
    ENDING_REMINDER_HOURS: str = "1,24"

    # Notifications
    NOTIFICATIONS_LIMIT: int = 20

    @property
    def auction_durations_list(self) -> List[int]:
        """Список допустимых длительностей аукциона"""
        return [int(d.strip()) for d in self.AUCTION_DURATIONS_DAYS.split(",") if d.strip()]

    @property
    def ending_reminder_hours_list(self) -> List[int]:
        """Часы до завершения, для которых отправляются напоминания"""
        return [int(h.strip()) for h in self.ENDING_REMINDER_HOURS.split(",") if h.strip()]

    @property
    def database_url(self) -> str:
        """URL подключения к базе данных"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
