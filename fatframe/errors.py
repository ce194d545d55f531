class FatframeError(Exception):
    exit_code: int = 1

    def __init__(self, message: str):
        super().__init__(message)

class ConfigError(FatframeError):
    exit_code = 2


class ParseError(FatframeError):
    exit_code = 3

class BuildError(FatframeError):
    exit_code = 20


class MergeError(FatframeError):
    exit_code = 21
