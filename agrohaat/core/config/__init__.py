from .config import settings, Settings, CounterPolicy
