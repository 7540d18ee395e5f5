# Mrs Index
# Copyright 2008-2012 Brigham Young University
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""param.py: classes whose attributes double as command-line options

A subclass of ParamObj lists its settings in a `_params` dict mapping an
attribute name to a Param.  Subclasses inherit (and may refine) the params of
their bases.  OptionParser.add_param_object turns the params into optparse
options, and instantiate builds an object from the parsed values.
"""

import optparse


class ParamError(Exception):
    def __init__(self, clsname, paramname):
        self.clsname = clsname
        self.paramname = paramname

    def __str__(self):
        return 'Class %s has no parameter "%s"' % (self.clsname, self.paramname)


# A subclass must be able to override an inherited default with None.
NotSpecified = object()


class Param(object):
    """A setting with a default value, an optparse type and help text.

    Attributes:
        default: value used when the option is not given
        type: optparse type ('string', 'int', ...).  A 'bool' param is a
            flag: it defaults to False and the option sets it to True.
        doc: help text
        shortopt: optional short option such as '-p'
    """
    _fields = ('default', 'type', 'doc', 'shortopt')
    _fallbacks = dict(default=None, type='string', doc=None, shortopt=None)

    def __init__(self, default=NotSpecified, type=NotSpecified,
            doc=NotSpecified, shortopt=NotSpecified):
        self.default = default
        self.type = type
        self.doc = doc
        self.shortopt = shortopt

    def inherit(self, base):
        """Fill in anything left unspecified from a base class's Param."""
        for field in self._fields:
            if getattr(self, field) is NotSpecified:
                setattr(self, field, getattr(base, field))

    def copy(self):
        return Param(**dict((f, getattr(self, f)) for f in self._fields))

    def finalize(self):
        for field in self._fields:
            if getattr(self, field) is NotSpecified:
                setattr(self, field, self._fallbacks[field])
        if self.type == 'bool':
            if self.default is None:
                self.default = False
            assert self.default is False


class _ParamMeta(type):
    """Merges the _params of a class with those of its bases.

    Unless the class defines its own __init__, it gets one that accepts each
    param as a keyword argument.
    """
    def __new__(cls, classname, bases, classdict):
        params = classdict.setdefault('_params', {})
        has_custom_init = '__init__' in classdict

        for base in bases:
            if '__init__' in base.__dict__:
                has_custom_init = True
            for name, baseparam in getattr(base, '_params', {}).items():
                if name in params:
                    params[name].inherit(baseparam)
                else:
                    params[name] = baseparam.copy()

        for param in params.values():
            param.finalize()

        if not has_custom_init:
            def __init__(self, **kwds):
                for key in kwds:
                    if key not in self._params:
                        raise ParamError(self.__class__.__name__, key)
                for name, param in self._params.items():
                    setattr(self, name, kwds.get(name, param.default))
            classdict['__init__'] = __init__

        return type.__new__(cls, classname, bases, classdict)


class ParamObj(_ParamMeta('ParamBase', (object,), {})):
    """An object whose attributes are described by its `_params` dict."""


def instantiate(cls, values, prefix=''):
    """Create an instance of cls from parsed optparse values.

    The attribute `name` of the new object is read from `values.name`, or
    from `values.<prefix>__name` if a prefix is given.
    """
    kwds = {}
    for name in cls._params:
        dest = '%s__%s' % (prefix, name) if prefix else name
        if hasattr(values, dest):
            kwds[name] = getattr(values, dest)
    return cls(**kwds)


class OptionParser(optparse.OptionParser):
    """optparse.OptionParser that knows how to add the params of a class."""

    def add_param_object(self, param_cls, prefix=''):
        """Adds an option group for the params of a ParamObj subclass.

        Underscores in param names become hyphens in option names, and the
        prefix, if any, is prepended to each long option.  Returns the
        OptionGroup.
        """
        title = param_cls.__name__
        if prefix:
            title = '%s (%s)' % (title, prefix)
        group = optparse.OptionGroup(self, title)
        self.add_option_group(group)

        for name, param in sorted(param_cls._params.items()):
            option = name.replace('_', '-')
            if prefix:
                option = '%s-%s' % (prefix, option)
                dest = '%s__%s' % (prefix, name)
            else:
                dest = name
            opts = ['--' + option]
            if param.shortopt:
                opts.append(param.shortopt)

            kwds = dict(dest=dest, default=param.default,
                    help='%s (default=%s)' % (param.doc, param.default))
            if param.type == 'bool':
                kwds['action'] = 'store_true'
            else:
                kwds['action'] = 'store'
                kwds['type'] = param.type
                kwds['metavar'] = name.upper()
            group.add_option(*opts, **kwds)
        return group

# vim: et sw=4 sts=4
