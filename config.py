import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
    ADMIN_API_KEY = os.getenv('ADMIN_API_KEY')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/doom_index')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True, 'pool_size': 5}

    # Generation cadence (minutes per bucket; 60 = hourly, 10 = minute-level profile)
    GENERATION_INTERVAL_MINUTES = int(os.getenv('GENERATION_INTERVAL_MINUTES', '60'))

    # Token selection
    FORCE_TOKEN_LIST = os.getenv('FORCE_TOKEN_LIST', '')
    RECENT_SELECTION_WINDOW_HOURS = int(os.getenv('RECENT_SELECTION_WINDOW_HOURS', '24'))
    RECENT_SELECTION_PENALTY = float(os.getenv('RECENT_SELECTION_PENALTY', '0.5'))
    PRICE_CHANGE_CEILING_PCT = float(os.getenv('PRICE_CHANGE_CEILING_PCT', '50'))

    # Weighted prompt
    PROMPT_MIN_WEIGHT = float(os.getenv('PROMPT_MIN_WEIGHT', '0.75'))
    PROMPT_MAX_WEIGHT = float(os.getenv('PROMPT_MAX_WEIGHT', '1.5'))
    PROMPT_EXPONENT = float(os.getenv('PROMPT_EXPONENT', '2.0'))
    IMAGE_WIDTH = int(os.getenv('IMAGE_WIDTH', '1024'))
    IMAGE_HEIGHT = int(os.getenv('IMAGE_HEIGHT', '1024'))

    # External providers
    COINGECKO_API_KEY = os.getenv('COINGECKO_API_KEY')
    IMAGE_PROVIDER = os.getenv('IMAGE_PROVIDER', 'runware')
    IMAGE_MODEL = os.getenv('IMAGE_MODEL', 'runware:100@1')
    RUNWARE_API_KEY = os.getenv('RUNWARE_API_KEY')
    HTTP_TIMEOUT_SECONDS = float(os.getenv('HTTP_TIMEOUT_SECONDS', '10'))
    IMAGE_TIMEOUT_SECONDS = float(os.getenv('IMAGE_TIMEOUT_SECONDS', '15'))
    HTTP_MAX_RETRIES = int(os.getenv('HTTP_MAX_RETRIES', '3'))

    # LLM (token context enrichment)
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    LLM_MODEL = os.getenv('LLM_MODEL', 'gpt-4.1-mini')

    # Storage
    BLOB_STORE_ROOT = os.getenv('BLOB_STORE_ROOT', os.path.join(os.getcwd(), 'storage'))
    PUBLIC_STORAGE_URL = os.getenv('PUBLIC_STORAGE_URL')

    # Scheduler
    SCHEDULER_ENABLED = os.getenv('SCHEDULER_ENABLED', 'true').lower() == 'true'
    SCHEDULER_API_ENABLED = False

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    ADMIN_API_KEY = 'test-admin-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}  # SQLite doesn't support pool_size
    SCHEDULER_ENABLED = False
    FORCE_TOKEN_LIST = ''
    IMAGE_PROVIDER = 'mock'
    RUNWARE_API_KEY = None
    COINGECKO_API_KEY = None
    OPENAI_API_KEY = None
    PUBLIC_STORAGE_URL = 'https://storage.example.com'
    HTTP_MAX_RETRIES = 1
