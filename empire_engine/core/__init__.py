"""
Core domain models, scheduling math, contracts, and invariants.

Модуль содержит базовые строительные блоки, не зависящие от внешних систем
(хранилище, HTTP layer, таймеры).
"""
