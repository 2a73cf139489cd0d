class MalformedResponse(Exception):
    """The generation endpoint answered with text that is not a question array."""

    def __init__(self, message, raw_text=""):
        super().__init__(message)
        self.raw_text = raw_text


class ExternalServiceFailure(Exception):
    pass


class GenerationFailure(Exception):
    pass


class DailyQuizConflict(GenerationFailure):
    pass
