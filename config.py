"""
Configuration Management
Loads and validates environment variables
"""
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Application configuration"""

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # KPI defaults (minutes unless noted)
    DEFAULT_CYCLE_TIME_MINUTES = float(os.getenv("DEFAULT_CYCLE_TIME_MINUTES", 210))
    DEFAULT_UNITS_PER_CYCLE = float(os.getenv("DEFAULT_UNITS_PER_CYCLE", 1))
    DEFAULT_DOWNTIME_BUDGET_MINUTES = float(os.getenv("DEFAULT_DOWNTIME_BUDGET_MINUTES", 60))

    # Shift duration accepted by the per-shift target basis
    MIN_SHIFT_MINUTES = 1
    MAX_SHIFT_MINUTES = 1440

    # Upper bound for the performance rate (1.5 = 150%)
    PERFORMANCE_RATE_CAP = float(os.getenv("PERFORMANCE_RATE_CAP", 1.5))

    @classmethod
    def validate(cls):
        """Validate configuration values"""
        problems = []
        if cls.DEFAULT_CYCLE_TIME_MINUTES <= 0:
            problems.append('DEFAULT_CYCLE_TIME_MINUTES')
        if cls.DEFAULT_UNITS_PER_CYCLE <= 0:
            problems.append('DEFAULT_UNITS_PER_CYCLE')
        if cls.DEFAULT_DOWNTIME_BUDGET_MINUTES < 0:
            problems.append('DEFAULT_DOWNTIME_BUDGET_MINUTES')
        if cls.PERFORMANCE_RATE_CAP < 1:
            problems.append('PERFORMANCE_RATE_CAP')

        if problems:
            raise ValueError(f"Invalid configuration values: {', '.join(problems)}")

        return True

# Validate on import
Config.validate()
