class QueryChartsError(Exception):
    """Base exception for querycharts."""

class ConfigError(QueryChartsError):
    pass

class ConnectionError(QueryChartsError):
    """The database could not be reached or refused the credentials."""

class QueryError(QueryChartsError):
    """The database rejected or failed the query text."""

class QueryTimeoutError(QueryError):
    pass

class QueryCancelledError(QueryError):
    pass

class ChartRenderError(QueryChartsError):
    pass

class InvalidDistributionInput(QueryChartsError):
    """Series values cannot be turned into a proportion distribution."""

class ExportError(QueryChartsError):
    pass
