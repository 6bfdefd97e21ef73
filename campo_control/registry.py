"""
CommandRegistry - Explicit command registration

Bounded Context: Command registration and validation
Responsibilities:
  - Register match commands with handlers
  - Reject unknown commands before anything touches the session
  - Provide introspection (available_commands, get_help)

Threading: register() takes a lock; lookups read an immutable snapshot
"""

import threading
from typing import Any, Callable, Dict, Optional, Set

Handler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """Raised when attempting to execute an unregistered command"""
    pass


class CommandRegistry:
    """
    Registry for control-plane commands.

    Every handler receives the full command payload (a dict, possibly empty)
    and may return a value for the caller (ignored by the MQTT plane).

    Example:
        registry = CommandRegistry()
        registry.register('toggle_play_pause', service.handle_toggle, "Start/pause the clock")
        registry.execute('toggle_play_pause', {'command': 'toggle_play_pause'})
    """

    def __init__(self):
        self._commands: Dict[str, Handler] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: Handler, description: str) -> None:
        """
        Register a command with its handler function.

        Raises:
            ValueError: If command already registered or name is invalid
        """
        if not command or command != command.lower() or " " in command:
            raise ValueError(f"Invalid command name: {command!r}")

        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            commands = dict(self._commands)
            commands[command] = handler
            self._commands = commands
            self._descriptions[command] = description

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a registered command.

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )
        return handler(command_data or {})

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """{command: description} snapshot."""
        with self._lock:
            return dict(self._descriptions)

    def count(self) -> int:
        return len(self._commands)
