"""Exceptions du pipeline de télémétrie."""

from station_pompage.core.constants import RETRIEVAL_ERROR_MESSAGE


class StationError(Exception):
    """Erreur de base du paquet."""


class RetrievalError(StationError):
    """Échec de récupération des données d'un canal.

    Attributes:
        user_message: Message unique présentable à l'opérateur
    """

    def __init__(self, detail: str = "", user_message: str = RETRIEVAL_ERROR_MESSAGE):
        super().__init__(detail or user_message)
        self.user_message = user_message


class TelemetryParseError(RetrievalError):
    """Valeur de champ non numérique dans la réponse de l'API."""


class FetchCancelled(StationError):
    """La requête a été abandonnée par l'appelant (changement de canal ou de période)."""
