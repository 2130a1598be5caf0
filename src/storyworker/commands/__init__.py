"""Built-in maintenance sub-commands for storyworker.

* :mod:`~storyworker.commands.cache` -- list, inspect, and clear stores.
* :mod:`~storyworker.commands.config` -- view and modify the configuration.
* :mod:`~storyworker.commands.queue` -- add and list queued records.
"""
