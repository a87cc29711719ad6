import os

from dotenv import load_dotenv
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)
    PROJECT_NAME: str = "minicluster"
    PROJECT_DESCRIPTION: str = "Disposable Accumulo mini cluster"
    VERSION: str = "0.1.0"

    LOG_LEVEL: str = "INFO"

    JAVA_HOME: str | None = None
    ACCUMULO_HOME: str | None = None
    ACCUMULO_VERSION: str = "1.4.0"
    HADOOP_HOME: str | None = None
    ZOOKEEPER_HOME: str | None = None
    JVM_OPTS: str = "-Xmx128m -XX:+UseSerialGC"

    ZOOKEEPER_HOST: str = "localhost"
    INSTANCE_NAME: str = "test"
    NUM_TSERVERS: int = 1

    LOG_FLUSH_INTERVAL: float = 1.0
    INIT_TIMEOUT: float | None = None
    STOP_TIMEOUT: float = 5.0
    PORT_ATTEMPTS: int = 13

    classpath_string: str = Field(
        default="",
        exclude=True,
        alias="EXTRA_CLASSPATH",
    )

    @computed_field
    def CLASSPATH(self) -> list[str]:
        result: list[str] = []
        if not self.classpath_string:
            return result

        for entry in self.classpath_string.split(os.pathsep):
            entry = entry.strip()
            if entry:
                result.append(entry)
        return result

    @property
    def version_info(self) -> tuple[int, int]:
        parts = self.ACCUMULO_VERSION.split(".")
        major = int(parts[0]) if parts and parts[0].isdigit() else 0
        minor = int(parts[1]) if len(parts) > 1 and parts[1].isdigit() else 0
        return major, minor


settings = Settings()
