"""AI-ассистент для личных финансов: шлюз к провайдеру completion."""

__version__ = "0.1.0"
