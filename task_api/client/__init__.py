from task_api.client.gateway import HttpTaskGateway, LocalTaskGateway, TaskGateway
from task_api.client.sync import TaskBoard

__all__ = ["HttpTaskGateway", "LocalTaskGateway", "TaskBoard", "TaskGateway"]
