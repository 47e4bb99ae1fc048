import logging
from typing import List
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.exceptions import EventPublishError, StoreUnavailableError, ValidationError
from ..schemas.task import TaskCreate, TaskResponse
from ..services.task_gateway import TaskGateway
from ..services.task_workflow import TaskCreationWorkflow

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = {"success": False, "message": "Internal server error"}


def get_task_gateway(db: Session = Depends(get_db)) -> TaskGateway:
    return TaskGateway(db)


def get_task_workflow(
    request: Request,
    gateway: TaskGateway = Depends(get_task_gateway)
) -> TaskCreationWorkflow:
    return TaskCreationWorkflow(gateway, request.app.state.publisher)


def _serialize(task: TaskResponse) -> dict:
    return task.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    workflow: TaskCreationWorkflow = Depends(get_task_workflow)
):
    """Create a task and publish a task_created event"""
    try:
        result = workflow.create_task(
            task_data.title,
            task_data.description,
            task_data.user_id
        )
    except ValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": str(e)}
        )
    except (StoreUnavailableError, EventPublishError) as e:
        logger.error(f"Error creating task: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )
    except Exception as e:
        logger.error(f"Unexpected error creating task: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )

    if result.degraded:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "message": "Task created but notification service is unavailable",
                "task": _serialize(result.task),
            }
        )

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "Task created successfully",
            "task": _serialize(result.task),
        }
    )


@router.get("", response_model=List[TaskResponse])
async def get_tasks(gateway: TaskGateway = Depends(get_task_gateway)):
    """Get all tasks"""
    try:
        tasks = gateway.find_all()
    except StoreUnavailableError as e:
        logger.error(f"Error fetching tasks: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )
    except Exception as e:
        logger.error(f"Unexpected error fetching tasks: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=[_serialize(TaskResponse.model_validate(task)) for task in tasks]
    )
