"""
Вспомогательные скрипты проекта нечёткого k-means.

Модули:
- generate_datasets: генерация синтетических датасетов
- visualize_clusters: 2D-визуализация нечёткого разбиения
"""
