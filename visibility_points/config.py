"""Application configuration and environment settings"""
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class SubgraphSettings(BaseModel):
    """Subgraph specific settings"""
    url: str = Field(..., description="GraphQL endpoint of the protocol subgraph")
    api_key: Optional[str] = Field(None, description="Bearer token for the subgraph gateway")
    page_size: int = Field(..., description="Rows per paginated query")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Subgraph settings
    SUBGRAPH_URL: str = Field("http://localhost:8000/subgraphs/name/visibility", description="Subgraph GraphQL endpoint")
    SUBGRAPH_API_KEY: Optional[str] = Field(None, description="Subgraph gateway API key")
    SUBGRAPH_PAGE_SIZE: int = Field(6000, description="Page size for paginated subgraph queries")

    # Database settings, DATABASE_URL wins over the individual fields
    DATABASE_URL: Optional[str] = Field(None, description="Full SQLAlchemy database URL")
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: str = Field("5432", description="Database port")
    DB_NAME: str = Field("visibility_points", description="Database name")
    DB_USER: str = Field("postgres", description="Database user")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password")
    DB_SSL_MODE: str = Field("require", description="PostgreSQL sslmode")
    INSERT_CHUNK_SIZE: int = Field(1000, description="Rows per batch insert of user points")

    # Points settings
    POINTS_DECIMALS: int = Field(18, description="Fixed-point scale of stored and committed points")
    BASE_POINTS: Decimal = Field(Decimal("100000"), description="Points rewarded every day")
    POINTS_PER_PROTOCOL_FEE_ETH: Decimal = Field(Decimal("50000"), description="Extra points per ETH of protocol fees")

    PROTOCOL_FEES_POINTS_SHARE: Decimal = Field(Decimal("0.75"))
    HOLDINGS_POINTS_SHARE: Decimal = Field(Decimal("0.15"))
    REFERRALS_POINTS_SHARE: Decimal = Field(Decimal("0.04"))
    DAILY_ACTIVE_USERS_POINTS_SHARE: Decimal = Field(Decimal("0.06"))

    ADD_FROM_PROTOCOL_FEES: bool = True
    ADD_FROM_HOLDINGS: bool = True
    ADD_FROM_REFERRALS: bool = True
    ADD_FROM_DAILY_ACTIVE_USERS: bool = True

    @property
    def subgraph_settings(self) -> SubgraphSettings:
        """Get subgraph settings as a separate model"""
        return SubgraphSettings(
            url=self.SUBGRAPH_URL,
            api_key=self.SUBGRAPH_API_KEY,
            page_size=self.SUBGRAPH_PAGE_SIZE
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
