"""
Small numerical and bookkeeping helpers shared across navdt.
"""
import itertools
import math

import numpy as np


def mag(vec):
    vec = np.asarray(vec)
    return np.sqrt( (vec**2).sum(axis=-1))

def to_unit(vecs):
    return vecs / mag(vecs)[...,None]

def dist(a,b=None):
    if b is not None:
        a=np.asarray(a)-np.asarray(b)
    return mag(a)

def point_segment_distance(point,seg):
    """
    Distance from point to finite segment
    point: [2] array
    seg [2,2] array
    """
    point=np.asarray(point,np.float64)
    seg=np.asarray(seg,np.float64)
    delta = point - seg[0]
    L=mag(seg[1]-seg[0])
    assert L!=0.0
    vec = (seg[1] - seg[0])/L
    alpha=np.dot(delta,vec) / L
    if alpha<0:
        return dist(point,seg[0])
    elif alpha>1:
        return dist(point,seg[1])
    else:
        delta = delta - np.dot(delta,vec) * vec
        return mag(delta)

def round_half_up(v):
    """ round to the nearest integer, halves going toward +inf.
    python's round() goes to even, which would shift centroids of
    mirrored triangles differently.
    """
    return int(math.floor(v+0.5))

def circular_pairs(iterable):
    """
    like pairwise, but closes the loop.
    s -> (s0,s1), (s1,s2), (s2, s3), ..., (sN,s0)
    """
    a, b = itertools.tee(iterable)
    b = itertools.cycle(b)
    next(b, None)
    return zip(a, b)

sentinel=object()

def array_append( A, b=sentinel ):
    """
    append b to A, where b.shape == A.shape[1:]
    Attempts to make this fast by dynamically resizing the base array of
    A, and returning the appropriate slice.

    if b is not given, zeros are appended to A
    """
    if (A.base is None) or A.base.size == A.size or A.base.strides != A.strides \
           or A.shape[1:] != A.base.shape[1:]:
        new_shape = list(A.shape)

        # twice as long as A, plus 10 in case A was empty
        new_shape[0] = new_shape[0]*2 + 10

        base = np.zeros( new_shape, dtype=A.dtype)
        base[:len(A)] = A
    else:
        base = A.base

    A = base[:len(A)+1]
    if b is sentinel:
        return A
    if A.dtype.isbuiltin:
        A[-1] = b
    else:
        # structured arrays: accept either a 0-d record or a sequence
        try:
            val=b.tolist()
        except AttributeError:
            val=tuple(b)
        A[-1] = val
    return A

def set_keywords(obj,kw):
    """
    Utility for __init__ methods to update object state with
    keyword arguments.  Checks that the attributes already
    exist, to avoid spelling mistakes.  Uses getattr and
    setattr for compatibility with properties.
    """
    for k in kw:
        try:
            getattr(obj,k)
        except AttributeError:
            raise Exception("Setting attribute %s failed because it doesn't exist on %s"%(k,obj))
        setattr(obj,k,kw[k])
