"""
Configuration loader for wd2sql
Loads settings from .env file and provides typed access to configuration values
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

# Load .env file
load_dotenv()


@dataclass
class LoaderConfig:
    """Dump ingestion configuration"""
    # Entities per transaction
    batch_size: int = int(os.getenv('WD2SQL_BATCH_SIZE', '1000'))

    # Language used for labels, descriptions and multilingual text
    language: str = os.getenv('WD2SQL_LANGUAGE', 'en')

    # Turns off SQLite journaling and synchronous writes for the run.
    # An interrupted run leaves an unusable database that must be deleted.
    disable_durability: bool = os.getenv('WD2SQL_DISABLE_DURABILITY', 'true').lower() == 'true'

    # Dump filename that selects standard input
    stdin_sentinel: str = '-'


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = os.getenv('LOG_LEVEL', 'INFO')
    format: str = os.getenv('LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')


class Config:
    """Main configuration class"""

    def __init__(self):
        self.env = os.getenv('ENV', 'development')
        self.debug = os.getenv('DEBUG', 'false').lower() == 'true'

        # Load sub-configurations
        self.loader = LoaderConfig()
        self.logging = LoggingConfig()

    def is_production(self) -> bool:
        """Check if running in production"""
        return self.env == 'production'


# Singleton instance
config = Config()
