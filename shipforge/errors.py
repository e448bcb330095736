class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnknownTaskError(ConfigError):
    def __init__(self, task_id: str, *, macro_id: str | None = None):
        if macro_id is None:
            super().__init__(f"Unknown task: {task_id}")
        else:
            super().__init__(f"Macro '{macro_id}' references unknown task: {task_id}")
        self.task_id = task_id
        self.macro_id = macro_id


class UnknownMacroError(ConfigError):
    def __init__(self, macro_id: str):
        super().__init__(f"Unknown macro: {macro_id}")
        self.macro_id = macro_id


class UnknownHostError(ConfigError):
    def __init__(self, name: str, *, task_id: str | None = None):
        if task_id is None:
            super().__init__(f"Unknown host group: {name}")
        else:
            super().__init__(f"Task '{task_id}' targets unknown host group: {name}")
        self.name = name
        self.task_id = task_id
