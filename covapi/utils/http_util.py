from flask_api import status

def custom_response(msg, code=status.HTTP_200_OK):
    return {
        'code': code,
        'message': msg
    }, code

def err_response(msg, code=status.HTTP_400_BAD_REQUEST):
    return custom_response(msg, code)

def paging_args(args, default_size, max_size):
    """
    Reads page/per_page query args, clamped to [1, max_size]. Returns None when
    either is not an integer.
    """
    try:
        page = max(int(args.get('page', 1)), 1)
        per_page = min(max(int(args.get('per_page', default_size)), 1), max_size)
    except (TypeError, ValueError):
        return None
    return page, per_page
