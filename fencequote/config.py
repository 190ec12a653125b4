from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    COMPANY_NAME: str = "SECUREWORKS FENCING"
    COMPANY_ABN: str = "64689223416"
    COMPANY_EMAIL: str = "fencing@secureworkswa.com.au"
    COMPANY_PHONE: str = "+61 489 267 772"

    # Entity name and contact printed on supplier orders
    ORDER_COMPANY_NAME: str = "SECUREWORKS WA PTY LTD"
    SITE_CONTACT_PHONE: str = "0489 267 772"
    DELIVERY_TIME: str = "8-10am"

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "FENCEQUOTE_"


settings = Settings()
