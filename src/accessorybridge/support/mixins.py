import threading


def quote(val):
    return "'" + str(val) + "'" if val is not None else "None"


class StringerMixin:

    def __str__(self):
        """
        outputs the class name and the object dictionary in key sorted order
        """
        return type(self).__name__ + ':' + self._sorted_items_string()

    def _sorted_items_string(self):
        return "{" + ", ".join([("'" + str(key)) + "'" + ": " + (quote(val))
                                for key, val in sorted(self.__dict__.items())]) + "}"


class CommonEqualityMixin(object):
    """  a deep equals comparison for value objects such as events. """
    local = threading.local()

    def __eq__(self, other):
        if not hasattr(CommonEqualityMixin.local, 'seen'):
            CommonEqualityMixin.local.seen = []
        seen = CommonEqualityMixin.local.seen
        return hasattr(other, '__dict__') and isinstance(other, self.__class__) \
            and self._dicts_equal(other, seen)

    def _dicts_equal(self, other, seen):
        p = (id(self), id(other))
        if p in seen:
            raise ValueError("recursive comparison of %s" % type(self).__name__)

        try:
            seen.append(p)
            result = self.__dict__ == other.__dict__
        finally:
            seen.pop()
        return result

    def __ne__(self, other):
        return not self.__eq__(other)

    __hash__ = object.__hash__
