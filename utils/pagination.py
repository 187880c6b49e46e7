DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20


def normalize_paging(page=None, limit=None):
    """
    Falls back to the defaults for missing or non-positive values.
    :return: (page, limit, offset)
    """
    page = page if page and page > 0 else DEFAULT_PAGE
    limit = limit if limit and limit > 0 else DEFAULT_LIMIT
    return page, limit, (page - 1) * limit


def count_pages(total, limit):
    return -(-total // limit)
