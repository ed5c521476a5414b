from .base import UseCase, UseCaseRequest, UseCaseResponse
from .commit_crop import CommitCropRequest, CommitCropResponse, CommitCropUseCase
