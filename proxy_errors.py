class ProxyError(Exception):
    """Base class for failures that end a proxied request."""
    status = 500


class MissingTarget(ProxyError):
    status = 400


class UnsupportedTarget(ProxyError):
    """Target uses a scheme other than http or https."""
    status = 400


class NavigationError(ProxyError):
    """The rendering session could not load the page."""
    status = 502


class NavigationTimeout(NavigationError):
    status = 504


class AssetFetchError(ProxyError):
    status = 500


class RewriteInputMalformed(ValueError):
    """A single URL reference could not be parsed; callers skip it."""
