"""Per-invocation state shared by commands, resources and the executor."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pgprov.core.config import AppConfig, DEFAULT_CONFIG_PATH
from pgprov.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Flags of one pgprov invocation plus its lazily loaded configuration.

    The configuration file is only read on first access to ``config``, so
    commands that fail before touching it still report a clean error.
    """

    dry_run: bool = False
    yes: bool = False
    verbosity: int = Verbosity.NORMAL
    no_color: bool = False
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    _config: Optional[AppConfig] = field(default=None, repr=False)
    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        self._console.configure(
            verbosity=self.verbosity,
            dry_run=self.dry_run,
            no_color=self.no_color,
        )

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = AppConfig(config_path=self.config_path)
        return self._config

    @property
    def console(self) -> Console:
        return self._console

    @property
    def is_verbose(self) -> bool:
        return self.verbosity >= Verbosity.VERBOSE

    @property
    def should_confirm(self) -> bool:
        """Destructive commands prompt unless --yes is given or nothing will run."""
        return not (self.yes or self.dry_run)


def create_context(
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Build the context from the global CLI options.

    ``--quiet`` wins over any number of ``-v`` flags.
    """
    verbosity = Verbosity.QUIET if quiet else min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)
    return ExecutionContext(
        dry_run=dry_run,
        yes=yes,
        verbosity=verbosity,
        no_color=no_color,
        config_path=config or DEFAULT_CONFIG_PATH,
    )
