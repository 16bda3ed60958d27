from torrent_bencode.bencode import (
    BencodeDecodingError,
    Decoder,
    Encoder,
    dump,
    dumps,
    inc_parse,
    load,
    loads,
    parse,
)
from torrent_bencode.bobj import (
    BDict,
    BencodeEncodingError,
    BInt,
    BList,
    BObj,
    BStr,
    from_python,
    to_python,
)
from torrent_bencode.metainfo import Metainfo, MetainfoError, load_metainfo
