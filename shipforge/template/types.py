class BindingError(ValueError):
    def __init__(self, message: str, *, name: str | None = None, task_id: str | None = None):
        if task_id is not None:
            message = f"{task_id}: {message}"
        super().__init__(message)
        self.name = name
        self.task_id = task_id
