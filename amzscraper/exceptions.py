class ScraperError(Exception):
    """Base class for errors raised by the order harvest."""


class PageStructureError(ScraperError):
    """An expected page element never appeared or held nothing usable."""


class NavigationError(ScraperError):
    """The browser could not load a page. Fatal for the run."""


class LoginError(ScraperError):
    """Manual authentication could not be verified."""
