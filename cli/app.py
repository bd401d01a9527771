"""
cli/app.py - 메인 CLI 엔트리포인트

Click 기반의 서비스 디스커버리 실행 명령입니다.
옵션은 모두 환경 변수로도 지정할 수 있습니다.

명령어 구조:
    ecs-sd --ecs.clusters prod,stg                 # 기본 :10101에서 실행
    ecs-sd --ecs.clusters prod --http.addr 127.0.0.1:9100 --log.level debug
    ECS_SD_CLUSTERS=prod ecs-sd                    # 환경 변수로 설정
    ecs-sd --version

종료 코드:
    0  정상 종료 (SIGINT/SIGTERM 후 유예 시간 내 종료)
    1  설정 오류, 서버 시작 실패, 강제 종료 (유예 시간 초과)

Usage:
    $ python -m cli.app --ecs.clusters prod
"""

import logging

import click

from cli.ui.console import configure_logging
from ecs_sd import __version__
from ecs_sd.config import DEFAULT_HTTP_ADDR, DEFAULT_LOG_LEVEL, DEFAULT_MAX_WORKERS, Settings
from ecs_sd.discovery import Aggregator, DiscoveryServer
from ecs_sd.ecs import BotoECSClient, CachedECSClient
from ecs_sd.exceptions import ConfigError, ServerError

logger = logging.getLogger("ecs_sd")


def build_client(settings: Settings) -> CachedECSClient:
    """설정으로 캐싱 ECS 클라이언트 생성

    Raises:
        ConfigError: AWS 프로파일을 찾을 수 없는 등 세션 생성 실패 시
    """
    import boto3
    from botocore.exceptions import BotoCoreError

    try:
        session = boto3.Session(profile_name=settings.aws_profile, region_name=settings.aws_region)
    except BotoCoreError as e:
        raise ConfigError("aws.profile", "boto3 session creation failed", cause=e) from e

    return CachedECSClient(BotoECSClient(session=session), logger=logger)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="ecs-sd")
@click.option(
    "--http.addr",
    "http_addr",
    default=DEFAULT_HTTP_ADDR,
    show_default=True,
    envvar="ECS_SD_HTTP_ADDR",
    help="HTTP listen addr",
)
@click.option(
    "--log.level",
    "log_level",
    default=DEFAULT_LOG_LEVEL,
    show_default=True,
    envvar="ECS_SD_LOG_LEVEL",
    help="Set logging verbosity (debug, info, warn, error)",
)
@click.option(
    "--ecs.clusters",
    "ecs_clusters",
    multiple=True,
    envvar="ECS_SD_CLUSTERS",
    help="Set ECS clusters, separated by commas (repeatable)",
)
@click.option("--aws.region", "aws_region", default=None, envvar="AWS_REGION", help="AWS region")
@click.option("--aws.profile", "aws_profile", default=None, envvar="AWS_PROFILE", help="AWS profile")
@click.option(
    "--workers",
    "max_workers",
    type=int,
    default=DEFAULT_MAX_WORKERS,
    show_default=True,
    envvar="ECS_SD_WORKERS",
    help="Concurrent ECS service lookups per cluster",
)
def cli(
    http_addr: str,
    log_level: str,
    ecs_clusters: tuple[str, ...],
    aws_region: str | None,
    aws_profile: str | None,
    max_workers: int,
) -> None:
    """ECS task를 Prometheus HTTP SD 타겟으로 제공"""
    try:
        settings = Settings(
            ecs_clusters=list(ecs_clusters),
            http_addr=http_addr,
            log_level=log_level,
            aws_region=aws_region,
            aws_profile=aws_profile,
            max_workers=max_workers,
        )
    except ConfigError as e:
        click.echo(f"create discovery failed: {e}", err=True)
        raise SystemExit(1) from e

    configure_logging(settings.log_level_value)

    try:
        client = build_client(settings)
    except ConfigError as e:
        logger.error("create discovery failed: %s", e)
        raise SystemExit(1) from e

    with client:
        aggregator = Aggregator(client, settings.ecs_clusters, logger=logger, max_workers=settings.max_workers)
        server = DiscoveryServer(aggregator, settings.http_addr, logger=logger)
        try:
            server.run()
        except ServerError as e:
            logger.error("%s", e)
            raise SystemExit(1) from e


if __name__ == "__main__":
    cli()
