"""
Package commun pour le moteur NLU.

Contient les modèles de données, configuration et utilitaires partagés.
"""

from .models import *
from .config import *
from .logging_utils import *
from .errors import *
