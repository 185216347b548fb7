from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Describes one environment setting a client needs before it can boot.

    Attributes:
        env_key (str): Raw key, prefixed by the client as <TYPE>_<ENGINE>_<KEY> (e.g. "BASE_URL").
        val_type (str): Expected value type: "string", "number", "bool" or "list".
        default (str | int | float | bool | list | None): Fallback value. None marks the key as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
