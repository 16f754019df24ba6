import os
from dotenv import load_dotenv
load_dotenv()

class Settings:

    def __init__(self):
        self.DISPATCH_BASE_URL = os.getenv('DISPATCH_BASE_URL', 'http://localhost:9000/api/batch-calling')
        self.DISPATCH_API_KEY = os.getenv('DISPATCH_API_KEY')
        self.DISPATCH_TIMEOUT_SECONDS = int(os.getenv('DISPATCH_TIMEOUT_SECONDS', '10'))

        self.BACKEND_HOST = os.getenv('BACKEND_HOST', '0.0.0.0')
        self.BACKEND_PORT = int(os.getenv('BACKEND_PORT', '8000'))

        self.DB_PATH = os.getenv('DATABASE_PATH', 'voicebatch.db')
        self.JWT_SECRET = os.getenv('JWT_SECRET')

        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

        self._validate()

    def _validate(self):
        if not self.DISPATCH_BASE_URL.startswith(('http://', 'https://')):
            raise RuntimeError("DISPATCH_BASE_URL must be an http(s) URL.")

        if self.DISPATCH_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("DISPATCH_TIMEOUT_SECONDS must be positive.")


settings = Settings()
