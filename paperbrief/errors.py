class SummarizerError(Exception):
    """Base for errors that carry a client-safe message and an HTTP status"""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self):
        return {"ok": False, "error": self.message}


class BadInput(SummarizerError):
    """Nothing usable was submitted"""

    status_code = 400


class UnreadableScanned(SummarizerError):
    """PDF has no text layer and no page could be rendered to an image"""

    status_code = 400

    def __init__(self, message: str = (
        "This PDF appears to be scanned (no text layer) and its pages could not be "
        "converted to images. Upload screenshots or photos of the pages as images instead."
    )):
        super().__init__(message)


class UpstreamOverloaded(SummarizerError):
    """Model endpoint kept answering 503 after local retries"""

    status_code = 503

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"The AI service is overloaded (gave up after {attempts} attempts). Try again shortly.")


class UpstreamMalformed(SummarizerError):
    """Model output could not be read as the expected JSON object"""

    status_code = 500

    def __init__(self, raw: str, excerpt_length: int = 300):
        self.raw_excerpt = (raw or "")[:excerpt_length]
        super().__init__("The model did not return valid JSON.")

    def to_dict(self):
        return {"ok": False, "error": self.message, "raw": self.raw_excerpt}


class ConfigMissing(SummarizerError):
    """A required credential is not configured"""

    status_code = 500

    def __init__(self, setting: str):
        self.setting = setting
        super().__init__(f"{setting} is missing")


class NotFound(SummarizerError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)
