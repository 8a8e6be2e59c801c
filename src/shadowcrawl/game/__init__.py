from .actions import Action
from .entities import Enemy, EnemyState, Player

__all__ = ["Action", "Enemy", "EnemyState", "Player"]
