"""Exceptions raised by the matchup pipeline.

A missing satellite or buoy value is not an error: it is carried through
the tables as NaN. These exceptions are for conditions that abort a run.
"""


class MatchupError(Exception):
    """Base class for matchup pipeline failures."""


class InvalidCoordinate(MatchupError, ValueError):
    """Longitude/latitude outside the valid range, or not finite."""


class DataUnavailable(MatchupError):
    """
    A remote dataset could not be reached (or refused the query).

    Carries the dataset id and the query so the caller can retry the run.
    """

    def __init__(self, message, dataset_id=None, query=None):
        super().__init__(message)
        self.dataset_id = dataset_id
        self.query = query

    def __str__(self):
        msg = super().__str__()
        if self.dataset_id:
            msg += f" [dataset={self.dataset_id}]"
        if self.query:
            msg += f" [query={self.query}]"
        return msg


class MalformedResponse(DataUnavailable):
    """The dataset answered, but not with the columns we asked for."""


class AlignmentError(MatchupError):
    """Buoy records and extracted values do not pair up row-for-row."""


class UnsupportedUnits(MatchupError, ValueError):
    """The satellite variable's ``units`` attribute is not a temperature we convert."""
