"""Binary glTF export of built sprites."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Sequence

import numpy as np
from pygltflib import (
    GLTF2,
    Accessor,
    Asset,
    Attributes,
    Buffer,
    BufferView,
    Image,
    Material,
    Mesh,
    Node,
    PbrMetallicRoughness,
    Primitive,
    Sampler,
    Scene,
    Texture,
    TextureInfo,
)

from .models import BuiltSprite

ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

UNSIGNED_INT = 5125
FLOAT = 5126

ACCESSOR_TYPE_SCALAR = "SCALAR"
ACCESSOR_TYPE_VEC3 = "VEC3"
ACCESSOR_TYPE_VEC2 = "VEC2"

NEAREST = 9728
CLAMP_TO_EDGE = 33071


def _align4(n: int) -> int:
    return int(math.ceil(n / 4.0) * 4)


def write_atlas_glb(
    output_path: str | Path,
    *,
    sprites: Sequence[BuiltSprite],
    texture_png: bytes,
    name_prefix: str | None = None,
    flip_v: bool = False,
) -> None:
    """Write every sprite as a flat z=0 mesh sharing one embedded atlas texture.

    Sprites are laid out in a row along +X by their render-space width so they
    do not overlap when the file is previewed. Empty sprites get no mesh.
    Set `flip_v` when the sprite UVs have a bottom-left origin.
    """

    blob = bytearray()

    buffer_views: list[BufferView] = []
    accessors: list[Accessor] = []
    gltf_meshes: list[Mesh] = []
    nodes: list[Node] = []

    def add_view(data: bytes, target: int | None) -> int:
        offset = len(blob)
        blob.extend(data)
        padded = _align4(len(blob))
        if padded != len(blob):
            blob.extend(b"\x00" * (padded - len(blob)))
        view_index = len(buffer_views)
        buffer_views.append(BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target))
        return view_index

    img_view = add_view(texture_png, None)

    cursor_x = 0.0
    for sprite in sprites:
        if sprite.is_empty:
            continue

        verts2 = np.asarray(sprite.vertices, dtype=np.float32)
        positions = np.zeros((verts2.shape[0], 3), dtype=np.float32)
        positions[:, :2] = verts2
        normals = np.zeros_like(positions)
        normals[:, 2] = 1.0
        texcoords = np.array(sprite.uvs, dtype=np.float32)
        if flip_v:
            texcoords[:, 1] = 1.0 - texcoords[:, 1]
        indices = np.asarray(sprite.indices, dtype=np.uint32)

        pos_view = add_view(positions.tobytes(), ARRAY_BUFFER)
        pos_accessor_index = len(accessors)
        accessors.append(
            Accessor(
                bufferView=pos_view,
                componentType=FLOAT,
                count=int(positions.shape[0]),
                type=ACCESSOR_TYPE_VEC3,
                min=positions.min(axis=0).tolist(),
                max=positions.max(axis=0).tolist(),
            )
        )

        nrm_view = add_view(normals.tobytes(), ARRAY_BUFFER)
        nrm_accessor_index = len(accessors)
        accessors.append(Accessor(bufferView=nrm_view, componentType=FLOAT, count=int(normals.shape[0]), type=ACCESSOR_TYPE_VEC3))

        uv_view = add_view(texcoords.tobytes(), ARRAY_BUFFER)
        uv_accessor_index = len(accessors)
        accessors.append(Accessor(bufferView=uv_view, componentType=FLOAT, count=int(texcoords.shape[0]), type=ACCESSOR_TYPE_VEC2))

        idx_view = add_view(indices.tobytes(), ELEMENT_ARRAY_BUFFER)
        idx_accessor_index = len(accessors)
        accessors.append(Accessor(bufferView=idx_view, componentType=UNSIGNED_INT, count=int(indices.shape[0]), type=ACCESSOR_TYPE_SCALAR))

        attrs = Attributes(POSITION=pos_accessor_index, NORMAL=nrm_accessor_index, TEXCOORD_0=uv_accessor_index)
        prim = Primitive(attributes=attrs, indices=idx_accessor_index, material=0)

        mesh_index = len(gltf_meshes)
        gltf_meshes.append(Mesh(primitives=[prim], name=sprite.id))

        min_x = float(verts2[:, 0].min())
        max_x = float(verts2[:, 0].max())
        node = Node(mesh=mesh_index, name=sprite.id, translation=[cursor_x - min_x, 0.0, 0.0])
        cursor_x += max_x - min_x
        nodes.append(node)

    gltf = GLTF2(
        asset=Asset(version="2.0"),
        buffers=[Buffer(byteLength=0)],
        bufferViews=buffer_views,
        accessors=accessors,
        meshes=gltf_meshes,
        images=[Image(bufferView=img_view, mimeType="image/png", name=(f"{name_prefix}_tex" if name_prefix else None))],
        samplers=[Sampler(magFilter=NEAREST, minFilter=NEAREST, wrapS=CLAMP_TO_EDGE, wrapT=CLAMP_TO_EDGE)],
        textures=[Texture(sampler=0, source=0, name=(f"{name_prefix}_texture" if name_prefix else None))],
        materials=[
            Material(
                name=(f"{name_prefix}_mat" if name_prefix else None),
                pbrMetallicRoughness=PbrMetallicRoughness(
                    baseColorFactor=[1.0, 1.0, 1.0, 1.0],
                    baseColorTexture=TextureInfo(index=0),
                    metallicFactor=0.0,
                    roughnessFactor=1.0,
                ),
                alphaMode="BLEND",
                doubleSided=True,
            )
        ],
        nodes=nodes,
        scenes=[Scene(nodes=list(range(len(nodes))))],
        scene=0,
    )

    gltf.buffers[0].byteLength = len(blob)
    gltf.set_binary_blob(bytes(blob))
    gltf.save_binary(str(output_path))
