import pydantic as p


class BaseModel(p.BaseModel):
    # dumps use field aliases unless told otherwise; the logging config relies
    # on this for keys such as `()` and `class`
    model_config = p.ConfigDict(serialize_by_alias=True, validate_by_name=True, validate_by_alias=True)


class WithTimeModified(BaseModel):
    # unix seconds
    time_modified: int = 0
