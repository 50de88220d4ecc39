"""
Points and pure geometric predicates.

Every predicate that makes a topological decision goes through
robust_predicates, so the signs are exact for float and integer input.
Edges are plain pairs of points, e=(p1,p2).
"""
from collections import namedtuple
import functools

import numpy as np

from . import robust_predicates


def _scalar(v):
    if isinstance(v,np.generic):
        return v.item()
    return v

class Point(namedtuple('Point',['x','y'])):
    """
    Immutable 2D location.  Value semantics: two points with the
    same coordinates are equal and hash the same, so points double as
    vertex keys.
    """
    __slots__=()

    def subtract(self,other):
        return Point(self.x-other[0],self.y-other[1])
    def dot(self,other):
        return self.x*other[0] + self.y*other[1]
    def distance_squared(self,other):
        d=self.subtract(other)
        return d.dot(d)
    def __repr__(self):
        return "Point(%s,%s)"%(self.x,self.y)

class Polypoint(Point):
    """
    Vertex of the dual graph: a rounded triangle centroid which
    remembers the triangle it came from.  Two polypoints are only equal
    when both location and triangle match, since neighboring slivers
    can round to the same integer location.
    """
    def __new__(cls,x,y,triangle=None):
        self=super(Polypoint,cls).__new__(cls,x,y)
        self.triangle=triangle
        return self
    def __eq__(self,other):
        if not isinstance(other,Polypoint):
            return False
        return tuple.__eq__(self,other) and self.triangle==other.triangle
    def __ne__(self,other):
        return not self.__eq__(other)
    def __hash__(self):
        return hash( (self.x,self.y,self.triangle) )
    def __repr__(self):
        return "Polypoint(%s,%s)"%(self.x,self.y)

def as_point(p):
    if isinstance(p,Point):
        return p
    return Point(_scalar(p[0]),_scalar(p[1]))

def as_edge(e):
    return (as_point(e[0]),as_point(e[1]))

def orientation(a,b,p):
    """ 1 if p is left of the directed line a->b, -1 if right, 0 if on it """
    return robust_predicates.orientation(a,b,p)

def in_circle(a,b,c,d):
    """
    1 if d is strictly inside the circumcircle of a,b,c, -1 if outside,
    0 if on the circle or if a,b,c is degenerate.  a,b,c may be given in
    either winding.
    """
    o=orientation(a,b,c)
    if o==0:
        return 0
    if o<0:
        b,c=c,b
    det=robust_predicates.incircle(a,b,c,d)
    return int(det>0)-int(det<0)

def in_circle_sos(a,b,c,d):
    """
    in_circle with cocircular ties broken by simulation of simplicity.
    Each point is lifted off the paraboloid by an infinitesimal, the
    lexicographically smallest point by the largest amount.  The lifting
    is the same for every query, so any point set has exactly one
    delaunay triangulation under this test.  Only a degenerate a,b,c
    gives 0.
    """
    a,b,c,d=[as_point(p) for p in (a,b,c,d)]
    o=orientation(a,b,c)
    if o==0:
        return 0
    if o<0:
        b,c=c,b
    det=in_circle(a,b,c,d)
    if det!=0:
        return det
    # derivative of the determinant with respect to each lift
    terms=[ (a,orientation(d,b,c)),
            (b,orientation(a,d,c)),
            (c,orientation(a,b,d)),
            (d,-orientation(a,b,c)) ]
    terms.sort(key=lambda t: t[0])
    for p,sign in terms:
        if sign!=0:
            return sign
    return 0

def collinear(p1,p2,p3):
    """ true if the three points do not span a triangle, which includes
    any two of them coinciding.
    """
    if p1==p2 or p2==p3 or p1==p3:
        return True
    return orientation(p1,p2,p3)==0

def ordered(x1,x2,x3):
    """
    given collinear points, return true if they are in order
    along that line
    """
    if x1[0]!=x2[0]:
        i=0
    else:
        i=1
    return (x1[i]<x2[i]) == (x2[i]<x3[i])

def centroid(points):
    xy=np.array(points,np.float64)
    return xy.mean(axis=0)

def radial_sort(points,center=None):
    """
    Sort points counter-clockwise around center (default: their
    centroid), starting from 12 o'clock.  Points in the same direction
    are ordered nearest first.  Stable.
    """
    points=[as_point(p) for p in points]
    if center is None:
        if len(points)==0:
            return []
        center=centroid(points)
    cx,cy=_scalar(center[0]),_scalar(center[1])
    c=(cx,cy)

    def half(p):
        dx=p[0]-cx
        dy=p[1]-cy
        if dx<0 or (dx==0 and dy>=0):
            return 0
        return 1

    def cmp_pts(a,b):
        ha,hb=half(a),half(b)
        if ha!=hb:
            return ha-hb
        o=orientation(c,a,b)
        if o!=0:
            return -o
        da=(a[0]-cx)**2 + (a[1]-cy)**2
        db=(b[0]-cx)**2 + (b[1]-cy)**2
        return int(da>db)-int(da<db)

    return sorted(points,key=functools.cmp_to_key(cmp_pts))

def on_same_side(e,p1,p2):
    """ p1 and p2 both strictly on the same side of the line through e """
    return orientation(e[0],e[1],p1)*orientation(e[0],e[1],p2) > 0

def is_between_points(e,p1,p2,strict=True):
    """
    true if the line through e separates p1 from p2.  With strict,
    a point on the line (including the segment itself) does not count
    as separated.
    """
    prod=orientation(e[0],e[1],p1)*orientation(e[0],e[1],p2)
    if strict:
        return prod<0
    return prod<=0

def overlaps_edge(e1,e2):
    """
    true if the two segments are collinear and share at least
    one point, which includes touching end to end.
    """
    a,b=e1
    if orientation(a,b,e2[0])!=0 or orientation(a,b,e2[1])!=0:
        return False
    if a[0]!=b[0]:
        i=0 # choose a coordinate which is varying
    else:
        i=1
    lo1,hi1=sorted([a[i],b[i]])
    lo2,hi2=sorted([e2[0][i],e2[1][i]])
    return lo1<=hi2 and lo2<=hi1

def segments_cross(e1,e2):
    """ proper crossing: each segment has the other's endpoints strictly
    on opposite sides.
    """
    return ( is_between_points(e1,e2[0],e2[1],strict=True) and
             is_between_points(e2,e1[0],e1[1],strict=True) )

def on_segment_interior(p,e):
    """ p lies on the open segment e """
    a,b=e
    if p==a or p==b:
        return False
    if orientation(a,b,p)!=0:
        return False
    return ordered(a,p,b)

def point_in_triangle(p,a,b,c):
    """ closed containment test.  degenerate triangles contain nothing. """
    o=orientation(a,b,c)
    if o==0:
        return False
    if o<0:
        b,c=c,b
    return ( orientation(a,b,p)>=0 and
             orientation(b,c,p)>=0 and
             orientation(c,a,p)>=0 )
