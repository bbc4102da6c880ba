"""Внешние адаптеры: JSON-загрузка, запись результатов, графики.

charts не импортируется здесь: matplotlib нужен только при построении графика.
"""

from .loader import load_model, load_profile, model_from_dict, profile_from_dict
from .recorder import ResultRecorder, read_csv

__all__ = [
    "ResultRecorder",
    "load_model",
    "load_profile",
    "model_from_dict",
    "profile_from_dict",
    "read_csv",
]
