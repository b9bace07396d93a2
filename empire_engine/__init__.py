"""
Empire Engine — агрегация империи игрока и планировщик ресурсных потоков.

Подсистемы:
- core: доменные модели, инварианты, математика расписаний, контракты
- synergy: каталог синергий и пересчёт активных синергий
- leveling: прогрессия уровня империи
- flows: жизненный цикл ресурсных потоков и планировщик
- storage: контракты хранилища и in-memory реализация
- services: операции для внешнего вызывающего кода (API layer)
"""
