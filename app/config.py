import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


HOLDER_POLICIES = ("allow_multiple", "reject", "replace")


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration read once from the environment (and .env)"""

    def __init__(self):
        self.events_table_name = os.getenv("EVENTS_TABLE_NAME")
        self.store_backend = os.getenv(
            "STORE_BACKEND", "dynamodb" if self.events_table_name else "memory"
        ).lower()

        self.aws_region = os.getenv("AWS_REGION", "us-east-1")
        self.dynamodb_endpoint_url = os.getenv("DYNAMODB_ENDPOINT_URL")

        # Hold and settlement policy
        self.hold_duration_seconds = int(os.getenv("HOLD_DURATION_SECONDS", 600))
        self.service_fee = float(os.getenv("SERVICE_FEE", 5))
        self.max_seats_per_hold = int(os.getenv("MAX_SEATS_PER_HOLD", 1))
        self.holder_hold_policy = os.getenv("HOLDER_HOLD_POLICY", "allow_multiple").lower()

        # Expiry sweeper
        self.sweep_interval_seconds = float(os.getenv("SWEEP_INTERVAL_SECONDS", 15))
        self.sweeper_enabled = _get_bool("SWEEPER_ENABLED", True)

        self.seed_demo_data = _get_bool("SEED_DEMO_DATA", False)
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", 8000))
        self.debug = _get_bool("DEBUG", False)

        if self.store_backend not in ("memory", "dynamodb"):
            raise ValueError(f"Unsupported STORE_BACKEND: {self.store_backend}")
        if self.holder_hold_policy not in HOLDER_POLICIES:
            raise ValueError(
                f"HOLDER_HOLD_POLICY must be one of {HOLDER_POLICIES}, got {self.holder_hold_policy}"
            )
        if self.max_seats_per_hold < 1:
            raise ValueError("MAX_SEATS_PER_HOLD must be at least 1")


settings = Settings()
