"""
L0 Data — Extension registry tables.

Pure data, no logic. Keys are extension names within each kind.

Per-family fields (``build_packages``, ``runtime_packages``,
``configure_args``) map a distro family (``alpine``, ``debian``) to a
value; ``_default`` applies to families without their own key. A family
missing from a package map means "no packages on that family".

Adding an extension is a code change here, never a runtime setting.
"""

from __future__ import annotations

# ── Builtin extensions (compiled from the runtime's source tree) ──

BUILTIN_EXTENSIONS: dict[str, dict] = {
    "bcmath": {},
    "bz2": {
        "build_packages": {
            "alpine": ["bzip2-dev"],
            "debian": ["libbz2-dev"],
        },
    },
    "calendar": {},
    "enchant": {
        "build_packages": {
            "alpine": ["enchant2-dev"],
            "debian": ["libenchant-2-dev"],
        },
    },
    "exif": {},
    "gd": {
        "build_packages": {
            "alpine": ["coreutils", "freetype-dev", "libjpeg-turbo-dev", "libpng-dev", "zlib-dev"],
            "debian": ["libfreetype6-dev", "libjpeg62-turbo-dev", "libpng-dev", "zlib1g-dev"],
        },
        "configure_args": {
            "_default": [
                "--with-freetype-dir=/usr/include/",
                "--with-jpeg-dir=/usr/include/",
                "--with-png-dir=/usr/include/",
            ],
        },
    },
    "gettext": {
        "build_packages": {
            "alpine": ["gettext-dev"],
        },
    },
    "gmp": {
        "build_packages": {
            "alpine": ["gmp-dev"],
            "debian": ["libgmp-dev"],
        },
    },
    "imap": {
        "build_packages": {
            "alpine": ["imap-dev", "krb5-dev", "openssl-dev"],
            "debian": ["libc-client-dev", "libkrb5-dev"],
        },
        "configure_args": {
            "_default": ["--with-kerberos", "--with-imap-ssl"],
        },
    },
    "intl": {
        "build_packages": {
            "alpine": ["icu-dev"],
            "debian": ["libicu-dev"],
        },
    },
    "ldap": {
        "build_packages": {
            "alpine": ["openldap-dev"],
            "debian": ["libldap2-dev"],
        },
    },
    "mysqli": {},
    "opcache": {},
    "pcntl": {},
    "pdo_mysql": {},
    "pdo_pgsql": {
        "build_packages": {
            "alpine": ["postgresql-dev"],
            "debian": ["libpq-dev"],
        },
    },
    "soap": {
        "build_packages": {
            "alpine": ["libxml2-dev"],
            "debian": ["libxml2-dev"],
        },
    },
    "zip": {
        "build_packages": {
            "alpine": ["libzip-dev", "zlib-dev"],
            "debian": ["libzip-dev", "zlib1g-dev"],
        },
    },
}


# ── PECL extensions (fetched, built and installed separately) ──

PECL_EXTENSIONS: dict[str, dict] = {
    "imagick": {
        "build_packages": {
            "alpine": ["imagemagick-dev", "libtool"],
            "debian": ["libmagickwand-dev"],
        },
        # Coder modules and delegate configs are loaded at run time and
        # are not visible as NEEDED entries.
        "runtime_packages": {
            "alpine": ["imagemagick"],
            "debian": ["imagemagick"],
        },
        "supported_versions": {"type": "gte", "reference": "3.4.0"},
    },
    "memcached": {
        "build_packages": {
            "alpine": ["libmemcached-dev", "zlib-dev", "libevent-dev"],
            "debian": ["libmemcached-dev", "zlib1g-dev", "libevent-dev"],
        },
        "supported_versions": {"type": "gte", "reference": "3.0.0"},
    },
    "xdebug": {
        "supported_versions": {"type": "gte", "reference": "2.7.0"},
        # Installed but not loaded: enabling it slows every request.
        "enable": False,
    },
}


# ── Runtime versions this build is tested against ──

SUPPORTED_RUNTIME_VERSIONS: tuple[str, ...] = ("7.3", "7.4")
