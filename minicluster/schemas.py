from pydantic import BaseModel, Field, model_validator


class ClusterPorts(BaseModel):
    host: str = Field(default="localhost")
    zookeeper: int = Field(...)
    master: int = Field(...)
    tserver: int = Field(...)
    logger: int | None = Field(default=None)

    @model_validator(mode="after")
    def _distinct(self):
        ports = [p for p in (self.zookeeper, self.master, self.tserver, self.logger) if p is not None]
        if len(set(ports)) != len(ports):
            raise ValueError(f"Cluster ports must be distinct, got {ports}")
        return self

    @property
    def zookeeper_address(self) -> str:
        return f"{self.host}:{self.zookeeper}"


class ScanRecord(BaseModel):
    row: str = Field(...)
    family: str = Field(...)
    qualifier: str = Field(...)
    visibility: str = Field(default="")
    value: str = Field(...)

    def __str__(self) -> str:
        return f"{self.row} {self.family}:{self.qualifier} [{self.visibility}] {self.value}"
