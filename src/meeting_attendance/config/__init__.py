import os

def get_settings_module() -> str:
    # Môi trường lấy từ biến APP_ENV, mặc định là 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "meeting_attendance.config.production"

    if env in {"test", "testing"}:
        return "meeting_attendance.config.testing"

    return "meeting_attendance.config.development"
