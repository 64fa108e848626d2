"""
imagebuild.integrations.cloud.aws_cli - AWS CLI / CDK Provider
================================================================

BaseCloudProvider backed by the ``aws`` and ``cdk`` command-line tools.
Credentials, profiles and endpoints come from the standard AWS CLI
configuration of the calling environment.

Command Mapping:
    infra_deploy      cdk deploy <pattern> --require-approval never
    infra_destroy     cdk destroy <pattern> --force
    infra_diff        cdk diff <pattern>
    infra_synth       cdk synth <pattern>
    start_build       aws codebuild start-build --project-name <p>
    upload_file       aws s3 cp <file> s3://<bucket>/<key>
    find_instance_id  aws ec2 describe-instances --filters Name=tag:<k>,Values=<v>
    get_ping_status   aws ssm describe-instance-information --filters Key=InstanceIds,Values=<id>
    send_command      aws ssm send-command ...
    describe_images   aws ecr describe-images --repository-name <r>

JSON responses are validated into small pydantic response models; a reply
that lacks a required id raises CommandError (INVALID_OUTPUT). describe_images
returns the raw text; the registry watcher matches tags as substrings of it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from imagebuild.core.config import CloudConfig
from imagebuild.core.exceptions import CommandError
from imagebuild.integrations.cloud.base import BaseCloudProvider
from imagebuild.integrations.cloud.runner import CommandResult, CommandRunner


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()

ResponseT = TypeVar("ResponseT", bound=BaseModel)


# =============================================================================
# Response Models
# =============================================================================

class BuildInfo(BaseModel):
    id: str = Field(min_length=1, description="CodeBuild build id")


class StartBuildResponse(BaseModel):
    """`aws codebuild start-build` reply."""

    build: BuildInfo


class Ec2Instance(BaseModel):
    instance_id: Optional[str] = Field(default=None, alias="InstanceId")


class Reservation(BaseModel):
    instances: list[Ec2Instance] = Field(default_factory=list, alias="Instances")


class DescribeInstancesResponse(BaseModel):
    """`aws ec2 describe-instances` reply."""

    reservations: list[Reservation] = Field(default_factory=list, alias="Reservations")

    def first_instance_id(self) -> Optional[str]:
        for reservation in self.reservations:
            for instance in reservation.instances:
                if instance.instance_id:
                    return instance.instance_id
        return None


class InstanceInformation(BaseModel):
    instance_id: Optional[str] = Field(default=None, alias="InstanceId")
    ping_status: Optional[str] = Field(default=None, alias="PingStatus")


class DescribeInstanceInformationResponse(BaseModel):
    """`aws ssm describe-instance-information` reply."""

    instance_information_list: list[InstanceInformation] = Field(
        default_factory=list, alias="InstanceInformationList"
    )


class CommandInfo(BaseModel):
    command_id: str = Field(min_length=1, alias="CommandId")


class SendCommandResponse(BaseModel):
    """`aws ssm send-command` reply."""

    command: CommandInfo = Field(alias="Command")


class AwsCliProvider(BaseCloudProvider):
    """Cloud provider that shells out to the AWS CLI and the CDK toolkit.

    Attributes:
        _config: Executables and timeout.
        _region: Region passed to every aws call; None uses the CLI default.
        _runner: Subprocess runner (injectable for tests).
    """

    def __init__(
        self,
        config: Optional[CloudConfig] = None,
        *,
        region: Optional[str] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        self._config = config or CloudConfig()
        self._region = region
        self._runner = runner or CommandRunner(
            timeout_seconds=self._config.command_timeout_seconds,
        )
        self._logger = logger.bind(component="aws_cli_provider", region=region)

    @property
    def provider_name(self) -> str:
        return "aws"

    # =========================================================================
    # Infrastructure (CDK)
    # =========================================================================

    async def infra_deploy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        await self._cdk(["deploy", stack_pattern, "--require-approval", "never"], env)

    async def infra_destroy(self, stack_pattern: str, env: Mapping[str, str]) -> None:
        await self._cdk(["destroy", stack_pattern, "--force"], env)

    async def infra_diff(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        result = await self._cdk(["diff", stack_pattern], env)
        return result.stdout + result.stderr

    async def infra_synth(self, stack_pattern: str, env: Mapping[str, str]) -> str:
        result = await self._cdk(["synth", stack_pattern], env)
        return result.stdout

    # =========================================================================
    # Build service
    # =========================================================================

    async def start_build(self, project_name: str) -> str:
        response = await self._aws_model(
            ["codebuild", "start-build", "--project-name", project_name],
            StartBuildResponse,
        )
        return response.build.id

    # =========================================================================
    # Staging storage
    # =========================================================================

    async def upload_file(self, local_path: Path, bucket: str, key: str) -> str:
        uri = f"s3://{bucket}/{key}"
        await self._aws(["s3", "cp", str(local_path), uri])
        return uri

    # =========================================================================
    # Compute + remote command
    # =========================================================================

    async def find_instance_id(self, tag_key: str, tag_value: str) -> Optional[str]:
        response = await self._aws_model(
            [
                "ec2", "describe-instances",
                "--filters", f"Name=tag:{tag_key},Values={tag_value}",
            ],
            DescribeInstancesResponse,
        )
        return response.first_instance_id()

    async def get_ping_status(self, instance_id: str) -> Optional[str]:
        response = await self._aws_model(
            [
                "ssm", "describe-instance-information",
                "--filters", f"Key=InstanceIds,Values={instance_id}",
            ],
            DescribeInstanceInformationResponse,
        )
        if not response.instance_information_list:
            return None
        return response.instance_information_list[0].ping_status

    async def send_command(
        self,
        instance_id: str,
        document_name: str,
        output_bucket: str,
        output_prefix: str,
    ) -> str:
        response = await self._aws_model(
            [
                "ssm", "send-command",
                "--instance-ids", instance_id,
                "--document-name", document_name,
                "--output-s3-bucket-name", output_bucket,
                "--output-s3-key-prefix", output_prefix,
            ],
            SendCommandResponse,
        )
        return response.command.command_id

    # =========================================================================
    # Artifact registry
    # =========================================================================

    async def describe_images(self, repository: str) -> str:
        result = await self._aws(["ecr", "describe-images", "--repository-name", repository])
        return result.stdout

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    async def _cdk(self, args: list[str], env: Mapping[str, str]) -> CommandResult:
        return await self._runner.run([self._config.cdk_executable, *args], env=env)

    async def _aws(self, args: list[str]) -> CommandResult:
        argv = [self._config.aws_executable, *args, "--output", "json"]
        if self._region:
            argv += ["--region", self._region]
        return await self._runner.run(argv)

    async def _aws_model(self, args: list[str], model: Type[ResponseT]) -> ResponseT:
        result = await self._aws(args)
        try:
            return model.model_validate_json(result.stdout.strip() or "{}")
        except ValidationError as e:
            raise CommandError(
                message=f"Unexpected output from aws {' '.join(args[:2])}",
                command=result.args,
                returncode=result.returncode,
                error_code="INVALID_OUTPUT",
                details={"stdout": result.stdout[:500], "errors": e.error_count()},
            ) from e
