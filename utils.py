from datetime import datetime, timezone

from settings import settings

# ログレベル設定（.env の LOG_LEVEL で変更してください）
print_log_level = settings.LOG_LEVEL  # Options: None, "info", "debug"
log_levels = {None: 0, "error": 0, "info": 1, "debug": 2}

def print_debug(*msg, log_level="info"):
    if log_levels.get(log_level, -1) <= log_levels.get(print_log_level, -1):
        print(*msg, flush=True)

def utc_now() -> datetime:
    """
    現在のUTC時刻をタイムゾーン付きの datetime で取得します。
    """
    return datetime.now(timezone.utc)
