from abc import ABCMeta, abstractmethod
from typing import Optional

from bs4 import BeautifulSoup

from mangarr.domain.models import Chapter, Title
from mangarr.errors import ValidationError
from mangarr.manga_loader.transport import RetryPolicy, get_content, get_json, get_text
from mangarr.types import SessionLike


class SourceBase(metaclass=ABCMeta):
    """
    Base class for provider adapters.

    Adapters turn a provider-specific identifier into `Title`, `Chapter` and
    `PageRef` objects. Every lookup that finds nothing raises `NotFoundError`
    instead of returning an empty result.
    """
    SOURCE_REGISTRY = {}

    def __init__(
            self,
            session: SessionLike,
            manga: str,
            group: str = "",
            language: str = "en",
            policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize the adapter.

        Parameters:
            session (SessionLike): The shared HTTP session.
            manga (str): Provider-specific manga identifier (ID, name or URL).
            group (str): Provider-specific scanlation group identifier.
            language (str): Language code, where the provider supports several.
            policy (Optional[RetryPolicy]): Retry policy for metadata requests.
        """
        self.session = session
        self.manga = manga
        self.group = group
        self.language = language or "en"
        self.policy = policy or RetryPolicy()

    def __init_subclass__(cls, **kwargs) -> None:
        """
        Automatically register subclasses by their source key.
        """
        cls.SOURCE_REGISTRY[cls.key] = cls
        return super().__init_subclass__(**kwargs)

    def __str__(self) -> str:
        return self.display_name

    def _get_json(self, url: str, **kwargs) -> object:
        return get_json(self.session, url, self.policy, **kwargs)

    def _get_content(self, url: str, **kwargs) -> bytes:
        return get_content(self.session, url, self.policy, **kwargs)

    def _get_soup(self, url: str, **kwargs) -> BeautifulSoup:
        """Fetch an HTML page and parse it."""
        return BeautifulSoup(get_text(self.session, url, self.policy, **kwargs), "html.parser")

    @property
    @abstractmethod
    def key(self) -> str:
        """
        Identifier used in configuration to select this source.
        """

    @property
    @abstractmethod
    def display_name(self) -> str:
        """
        Human-readable provider name used in log messages.
        """

    @abstractmethod
    def validate_input(self) -> None:
        """
        Check the configured identifiers before any network use.

        Raises:
            ValidationError: If an identifier is malformed.
        """

    @abstractmethod
    def get_title(self) -> Title:
        """
        Resolve the configured identifier into a title.
        """

    @abstractmethod
    def get_chapters(self, title: Title) -> None:
        """
        Populate `title.chapters` in place.
        """

    @abstractmethod
    def get_pages(self, chapter: Chapter) -> None:
        """
        Populate `chapter.pages` in place.
        """


def build_source(
        key: str,
        session: SessionLike,
        manga: str,
        group: str = "",
        language: str = "en",
        policy: Optional[RetryPolicy] = None,
) -> SourceBase:
    """
    Instantiate the adapter registered under `key`.

    Raises:
        ValidationError: If no adapter is registered for `key`.
    """
    try:
        source_class = SourceBase.SOURCE_REGISTRY[key.lower()]
    except KeyError:
        known = ", ".join(sorted(SourceBase.SOURCE_REGISTRY))
        raise ValidationError(f"unknown source {key!r}, expected one of: {known}") from None
    return source_class(session, manga, group=group, language=language, policy=policy)
