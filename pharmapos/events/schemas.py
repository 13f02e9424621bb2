from enum import Enum


class EventType(str, Enum):
    PRODUCT_UPDATE = "product_update"
    PRODUCT_DELETED = "product_deleted"
    DATA_RESET = "data_reset"
