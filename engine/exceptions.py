# engine/exceptions.py

class RpcaError(Exception):
    pass


class InvalidFrequency(RpcaError):
    pass


class NotDivisible(RpcaError):
    pass


class DegenerateScale(RpcaError):
    pass


class InvalidOption(RpcaError):
    pass


class InvalidSeries(RpcaError):
    pass
