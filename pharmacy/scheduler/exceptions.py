from rest_framework import status
from rest_framework.exceptions import APIException


class JobRegistrationError(ValueError):
    """A job with the same name is already registered"""


class JobNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Job not found.'
    default_code = 'job_not_found'


class JobAlreadyRunning(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Job is already running.'
    default_code = 'job_already_running'


class JobExecutionFailed(APIException):
    """The job's underlying operation raised; carries only its message"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Job failed.'
    default_code = 'job_failed'
