# errors.py
class TdbError(Exception):
    pass


class ConfigError(TdbError):
    pass


class ServerNotFoundError(TdbError):
    pass


class InvalidArgumentError(TdbError):
    pass


class WritesDisabledError(InvalidArgumentError):
    pass


class ConnectTimeoutError(TdbError):
    pass


class ExecError(TdbError):
    pass


class EmptyResultError(TdbError):
    pass
