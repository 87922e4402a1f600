import logging
from typing import Any

from fuzzykmeans.core.cluster import SoftCluster, format_vector


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """
    Создаёт и настраивает корневой логгер проекта ``fuzzykmeans``.

    :param level: минимальный уровень логирования
    :return: настроенный экземпляр :class:`logging.Logger`
    """
    logger = logging.getLogger("fuzzykmeans")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Чтобы сообщения не дублировались через root-логгер
    logger.propagate = False

    return logger


def format_cluster(cluster: SoftCluster) -> str:
    """Однострочное описание кластера для логов итерации."""
    return (
        f"Cluster {cluster.id} center:{format_vector(cluster.center)} "
        f"numPoints:{cluster.num_points:.3f} "
        f"radius:{format_vector(cluster.radius)}"
        f"{' converged' if cluster.converged else ''}"
    )


def format_run_prefix(config: Any, n_points: int, n_clusters: int) -> str:
    """
    Префикс логов запуска: размер входа и ключевые параметры.

    Ожидается объект с полями ``m``, ``distance_measure`` и ``method``
    (см. :class:`fuzzykmeans.config.FuzzyKMeansConfig`).
    """
    return (
        f"[N={n_points} K={n_clusters} m={config.m:g} "
        f"measure={config.distance_measure} method={config.method.value}]"
    )
